# State = everything required to resume or audit an agent run at a point in time:
# the conversation transcript and the per tool call task records.
#
# The StateManager is the only owner of these objects. Other components mutate
# them through its API and always receive copies back.
