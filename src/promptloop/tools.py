# src/promptloop/tools.py
"""
Tool registration, documentation and execution.

A ToolRegistry is a closed catalog mapping tool names to callables. Tools
are resolved by plain string lookup; an unknown name is recorded as an
``UNKNOWN_TOOL`` error value rather than raised. Tool functions may be
synchronous or ``async``.

Usage:
    from promptloop.tools import register_tool

    @register_tool
    async def read_file(path: str) -> str:
        \"\"\"Read a text file and return its contents.\"\"\"
        ...
"""

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .exceptions import ToolRegistrationError
from .models import Tool, ToolCall, ToolError, ToolErrorKind, ToolInvocation

logger = logging.getLogger(__name__)

_JSON_TYPES: Dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}


def infer_parameters_schema(func: Callable) -> Dict[str, Any]:
    """
    Build a JSON schema for ``func``'s keyword arguments from its signature.

    Annotations outside the basic JSON types are left untyped. Parameters
    without a default are required.
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for name, param in inspect.signature(func).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = param.annotation
        prop: Dict[str, Any] = {}
        json_type = _JSON_TYPES.get(getattr(annotation, "__origin__", annotation))
        if json_type:
            prop["type"] = json_type
        properties[name] = prop
        if param.default is param.empty:
            required.append(name)
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _first_paragraph(doc: Optional[str]) -> str:
    if not doc:
        return ""
    return inspect.cleandoc(doc).split("\n\n", 1)[0].replace("\n", " ").strip()


@dataclass(frozen=True)
class RegisteredTool:
    """A tool definition paired with the callable that implements it."""

    definition: Tool
    func: Callable[..., Any]

    @property
    def name(self) -> str:
        return self.definition.name


class ToolRegistry:
    """
    Catalog of tools that a session may offer to the model.

    Registration order is preserved and used for the catalog and the
    rendered documentation. The engine only reads from a registry.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def register(
        self,
        name: str,
        func: Callable[..., Any],
        description: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> RegisteredTool:
        """
        Register ``func`` under ``name``.

        Args:
            name: Name the model uses to call the tool.
            func: Sync or async callable receiving the call arguments as keywords.
            description: Defaults to the first paragraph of the docstring.
            parameters: JSON schema; inferred from the signature when omitted.

        Raises:
            ToolRegistrationError: If the name is empty or already registered.
        """
        if not name or not name.strip():
            raise ToolRegistrationError(repr(name), "Tool name must not be empty.")
        if name in self._tools:
            raise ToolRegistrationError(name, "Tool already registered.")
        if not callable(func):
            raise ToolRegistrationError(name, "Tool implementation is not callable.")

        definition = Tool(
            name=name,
            description=description if description is not None else _first_paragraph(func.__doc__),
            parameters=parameters if parameters is not None else infer_parameters_schema(func),
        )
        registered = RegisteredTool(definition=definition, func=func)
        self._tools[name] = registered
        logger.debug(f"Registered tool '{name}'")
        return registered

    def tool(
        self,
        func: Optional[Callable[..., Any]] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ):
        """Decorator form of :meth:`register`. Usable bare or with keyword arguments."""
        def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
            self.register(name or f.__name__, f, description=description, parameters=parameters)
            return f

        if func is not None:
            return decorator(func)
        return decorator

    def get(self, name: str) -> Optional[RegisteredTool]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get_tool_names(self) -> List[str]:
        return list(self._tools)

    def get_tool_definitions(self) -> List[Tool]:
        """Tool definitions in registration order, as advertised to the model."""
        return [registered.definition for registered in self._tools.values()]

    catalog = get_tool_definitions

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute_tool(self, tool_call: ToolCall) -> ToolInvocation:
        """
        Execute a tool call and record its outcome.

        Never raises for tool-level problems: an unknown name or a failing
        tool produces a ToolInvocation carrying a ToolError.
        """
        tool_name = tool_call.name
        registered = self._tools.get(tool_name)

        if registered is None:
            error_msg = f"Tool '{tool_name}' is not available. Available tools: {self.get_tool_names()}"
            logger.warning(error_msg)
            return ToolInvocation(
                call_id=tool_call.id,
                tool_name=tool_name,
                arguments=tool_call.arguments,
                error=ToolError(kind=ToolErrorKind.UNKNOWN_TOOL, message=error_msg),
            )

        try:
            logger.debug(f"Executing tool '{tool_name}' with arguments: {tool_call.arguments}")
            if inspect.iscoroutinefunction(registered.func):
                result = await registered.func(**tool_call.arguments)
            else:
                result = registered.func(**tool_call.arguments)
                if inspect.isawaitable(result):
                    result = await result
        except TypeError as e:
            error_msg = f"Invalid arguments for tool '{tool_name}': {e}"
            logger.error(error_msg, exc_info=True)
            return self._failed(tool_call, error_msg)
        except Exception as e:
            error_msg = f"Error executing tool '{tool_name}': {e}"
            logger.error(error_msg, exc_info=True)
            return self._failed(tool_call, error_msg)

        logger.debug(f"Tool '{tool_name}' executed successfully")
        return ToolInvocation(
            call_id=tool_call.id,
            tool_name=tool_name,
            arguments=tool_call.arguments,
            result=_stringify(result),
        )

    @staticmethod
    def _failed(tool_call: ToolCall, message: str) -> ToolInvocation:
        return ToolInvocation(
            call_id=tool_call.id,
            tool_name=tool_call.name,
            arguments=tool_call.arguments,
            error=ToolError(kind=ToolErrorKind.EXECUTION_FAILED, message=message),
        )

    def render_docs(self) -> str:
        """Markdown documentation for every registered tool, in registration order."""
        if not self._tools:
            return "No tools available."
        return "\n\n".join(render_tool_doc(r.definition) for r in self._tools.values())


def render_tool_doc(tool: Tool) -> str:
    """Render a single tool definition as a Markdown section."""
    lines = [f"## {tool.name}", ""]
    if tool.description:
        lines.extend([tool.description, ""])
    properties = tool.parameters.get("properties") or {}
    required = set(tool.parameters.get("required") or [])
    lines.append("### Arguments")
    lines.append("")
    if not properties:
        lines.append("None.")
    for arg_name, schema in properties.items():
        arg_type = schema.get("type", "any")
        flag = "required" if arg_name in required else "optional"
        line = f"- `{arg_name}` ({arg_type}, {flag})"
        if schema.get("description"):
            line += f": {schema['description']}"
        lines.append(line)
    return "\n".join(lines)


def _stringify(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    try:
        return json.dumps(result, default=str)
    except (TypeError, ValueError):
        return str(result)


# Process-wide catalog used by sessions that are not given their own registry.
default_registry = ToolRegistry()


def register_tool(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    parameters: Optional[Dict[str, Any]] = None,
):
    """Register a tool on :data:`default_registry`."""
    return default_registry.tool(func, name=name, description=description, parameters=parameters)
