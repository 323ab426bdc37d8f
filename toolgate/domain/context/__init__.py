# This module handles context assembly for a single model call

# +---------------------+
# |      Memory         |   (Persistent, keyword ranked, file backed)
# |---------------------|
# | Past exchanges      |
# | "User: / Assistant:"|
# +---------------------+

# +---------------------+
# |      State          |   (Authoritative transcript and task records)
# |---------------------|
# | Conversations       |
# | Messages            |
# | Tool task records   |
# +---------------------+

#    \    /
#     \  /
#      \/
# +------------------------------+
# |           Context            |   (Rebuilt per run, folded per tool turn)
# |------------------------------|
# | Persona + tool catalogue     |
# | Relevant memory digest       |
# | Prior history verbatim       |
# | Current user message         |
# +------------------------------+
#         |
#         v
#   [Provider / tool calls]
