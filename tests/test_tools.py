# tests/test_tools.py
"""
Tests for ToolRegistry registration, documentation and execution.
"""

from typing import List, Optional

import pytest

from promptloop.exceptions import ToolRegistrationError
from promptloop.models import ToolCall, ToolErrorKind
from promptloop.tools import ToolRegistry, infer_parameters_schema, render_tool_doc


class TestRegistration:
    """Registering tools."""

    def test_register_and_lookup(self):
        registry = ToolRegistry()
        registry.register("shout", lambda text: text.upper(), description="Upper-case text")

        assert registry.has_tool("shout")
        assert "shout" in registry
        assert len(registry) == 1
        assert registry.get("shout").definition.description == "Upper-case text"
        assert registry.get("missing") is None

    def test_duplicate_name_rejected(self):
        registry = ToolRegistry()
        registry.register("t", lambda: None)
        with pytest.raises(ToolRegistrationError) as exc_info:
            registry.register("t", lambda: None)
        assert exc_info.value.tool_name == "t"

    def test_empty_name_rejected(self):
        with pytest.raises(ToolRegistrationError):
            ToolRegistry().register("  ", lambda: None)

    def test_non_callable_rejected(self):
        with pytest.raises(ToolRegistrationError):
            ToolRegistry().register("t", "not callable")

    def test_decorator_with_options(self):
        registry = ToolRegistry()

        @registry.tool(name="search_docs", description="Search the docs")
        def search(query: str) -> str:
            return query

        assert registry.get_tool_names() == ["search_docs"]
        assert search("x") == "x"

    def test_description_from_docstring(self):
        registry = ToolRegistry()

        @registry.tool
        def fetch(url: str) -> str:
            """
            Fetch a URL
            and return the body.

            Details that are not part of the description.
            """
            return url

        assert registry.get("fetch").definition.description == "Fetch a URL and return the body."

    def test_definitions_keep_registration_order(self):
        registry = ToolRegistry()
        for name in ("zeta", "alpha", "mid"):
            registry.register(name, lambda: None)
        assert [t.name for t in registry.get_tool_definitions()] == ["zeta", "alpha", "mid"]
        assert registry.catalog() == registry.get_tool_definitions()


class TestSchemaInference:
    """JSON schema built from signatures."""

    def test_types_and_required(self):
        def tool(path: str, limit: int = 10, ratio: float = 0.5, verbose: bool = False,
                 tags: List[str] = None, extra: Optional[str] = None, **kwargs):
            pass

        schema = infer_parameters_schema(tool)
        assert schema["required"] == ["path"]
        assert schema["properties"]["path"] == {"type": "string"}
        assert schema["properties"]["limit"] == {"type": "integer"}
        assert schema["properties"]["ratio"] == {"type": "number"}
        assert schema["properties"]["verbose"] == {"type": "boolean"}
        assert schema["properties"]["tags"] == {"type": "array"}
        assert schema["properties"]["extra"] == {}
        assert "kwargs" not in schema["properties"]

    def test_no_parameters(self):
        assert infer_parameters_schema(lambda: None) == {"type": "object", "properties": {}}


class TestExecution:
    """execute_tool records outcomes instead of raising."""

    @pytest.mark.asyncio
    async def test_sync_tool(self, registry):
        result = await registry.execute_tool(ToolCall(id="1", name="add", arguments={"a": 2, "b": 3}))
        assert result.call_id == "1"
        assert result.result == "5"
        assert not result.failed

    @pytest.mark.asyncio
    async def test_async_tool(self, registry):
        result = await registry.execute_tool(ToolCall(name="echo", arguments={"text": "hi"}))
        assert result.result == "hi"

    @pytest.mark.asyncio
    async def test_structured_result_serialized(self):
        registry = ToolRegistry()
        registry.register("info", lambda: {"ok": True, "items": [1, 2]})
        result = await registry.execute_tool(ToolCall(name="info"))
        assert result.result == '{"ok": true, "items": [1, 2]}'

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        result = await registry.execute_tool(ToolCall(name="nope"))
        assert result.error.kind == ToolErrorKind.UNKNOWN_TOOL
        assert "nope" in result.error.message
        assert result.result is None

    @pytest.mark.asyncio
    async def test_raising_tool(self, registry):
        result = await registry.execute_tool(ToolCall(name="explode"))
        assert result.error.kind == ToolErrorKind.EXECUTION_FAILED
        assert "kaboom" in result.error.message
        assert result.as_content().startswith("ERROR (execution_failed)")

    @pytest.mark.asyncio
    async def test_bad_arguments(self, registry):
        result = await registry.execute_tool(ToolCall(name="add", arguments={"a": 1}))
        assert result.error.kind == ToolErrorKind.EXECUTION_FAILED
        assert "Invalid arguments" in result.error.message


class TestDocumentation:
    """Markdown rendering."""

    def test_render_tool_doc(self, registry):
        doc = render_tool_doc(registry.get("add").definition)
        assert doc == (
            "## add\n"
            "\n"
            "Add two integers.\n"
            "\n"
            "### Arguments\n"
            "\n"
            "- `a` (integer, required)\n"
            "- `b` (integer, required)"
        )

    def test_argument_descriptions_and_optional(self):
        registry = ToolRegistry()
        registry.register(
            "grep",
            lambda pattern, path=".": None,
            description="Search files",
            parameters={
                "type": "object",
                "properties": {
                    "pattern": {"type": "string", "description": "Regex to find"},
                    "path": {"type": "string"},
                },
                "required": ["pattern"],
            },
        )
        docs = registry.render_docs()
        assert "- `pattern` (string, required): Regex to find" in docs
        assert "- `path` (string, optional)" in docs

    def test_tool_without_arguments(self, registry):
        assert render_tool_doc(registry.get("explode").definition).endswith("### Arguments\n\nNone.")
