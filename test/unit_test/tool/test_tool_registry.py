import asyncio

import pytest
from pydantic import BaseModel

from toolgate.domain.tool.base_tool import FunctionTool
from toolgate.domain.tool.tool_registry import ToolRegistry
from toolgate.errors import ToolExecutionError, ToolNotFoundError


class NoArgs(BaseModel):
    pass


class TestRegistration:
    """Explicit registration and lookup."""

    def test_register_and_lookup(self, echo_tool):
        """Test that a registered tool is listed and described."""
        registry = ToolRegistry()
        registry.register(echo_tool)

        assert registry.has("echo")
        assert registry.get("echo") is echo_tool
        assert registry.get_type("echo") == "background"
        assert registry.requires_consent("echo") is False
        assert [schema.name for schema in registry.get_schemas()] == ["echo"]
        assert registry.get_schemas()[0].parameters["properties"]["text"]["type"] == "string"

    def test_same_name_replaces_previous(self, echo_tool):
        """Test that re-registering a name keeps only the newest tool."""
        registry = ToolRegistry()
        registry.register(echo_tool)
        replacement = FunctionTool(
            name="echo", description="Louder echo", parameters=NoArgs,
            handler=echo_tool.handler, type="shell"
        )
        registry.register(replacement)

        assert registry.list() == [replacement]
        assert registry.get_type("echo") == "shell"

    def test_unknown_tool_raises(self):
        """Test that looking up an unregistered tool raises."""
        with pytest.raises(ToolNotFoundError):
            ToolRegistry().get("missing")


class TestExecution:
    """Validation and timeout around tool bodies."""

    @pytest.mark.asyncio
    async def test_valid_arguments_reach_the_tool(self, registry, runtime_context):
        """Test that validated arguments are passed to the handler."""
        assert await registry.execute("echo", {"text": "hi"}, runtime_context) == {"echoed": "hi"}

    @pytest.mark.asyncio
    async def test_invalid_arguments_are_rejected(self, registry, runtime_context):
        """Test that a missing required field fails before execution."""
        with pytest.raises(ToolExecutionError) as exc_info:
            await registry.execute("echo", {}, runtime_context)
        assert "Invalid arguments for echo" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_slow_tool_times_out(self, runtime_context):
        """Test that a tool exceeding the command timeout fails with a timeout message."""

        async def slow(args, context):
            await asyncio.sleep(1)
            return {}

        registry = ToolRegistry()
        registry.register(FunctionTool(name="slow", description="Sleeps", parameters=NoArgs, handler=slow))
        context = runtime_context.model_copy(update={"command_timeout_ms": 20})

        with pytest.raises(ToolExecutionError) as exc_info:
            await registry.execute("slow", {}, context)
        assert "tool:slow timed out after 20ms" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_mapping_result_is_an_error(self, runtime_context):
        """Test that tools must return a dict."""

        async def wrong(args, context):
            return ["not", "a", "dict"]

        registry = ToolRegistry()
        registry.register(FunctionTool(name="wrong", description="Bad result", parameters=NoArgs, handler=wrong))

        with pytest.raises(ToolExecutionError):
            await registry.execute("wrong", {}, runtime_context)
