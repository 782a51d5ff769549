# src/promptloop/models.py
"""
Core data models for the promptloop library.

This module defines the Pydantic models used to represent fundamental
data structures: conversation roles and messages sent to a model client,
tool definitions and tool calls, the normalized model response, and the
three kinds of history entries recorded by a session (user prompts, model
replies and tool invocations). All models are frozen; a recorded entry is
never modified after it has been appended.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """
    Enumeration of possible roles in a conversation payload.
    These roles define the origin or type of a message.
    """
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"

    @classmethod
    def _missing_(cls, value: object): # type: ignore[misc]
        """
        Handles case-insensitive matching and common aliases for roles.
        For example, "Agent" or "AGENT" will be mapped to Role.ASSISTANT.
        """
        if isinstance(value, str):
            lower_value = value.lower()
            if lower_value == "agent":
                return cls.ASSISTANT
            for member in cls:
                if member.value == lower_value:
                    return member
        return None


# =============================================================================
# Tools
# =============================================================================


class Tool(BaseModel):
    """
    Definition of a tool as advertised to the model.

    Attributes:
        name: Unique name the model uses to request the tool.
        description: Human-readable description of what the tool does.
        parameters: JSON schema describing the tool's arguments.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique name of the tool.")
    description: str = Field(default="", description="What the tool does.")
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema of the tool arguments.",
    )


class ToolCall(BaseModel):
    """A single tool call requested by the model."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Identifier correlating the call with its result.")
    name: str = Field(description="Name of the requested tool.")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the tool.")


class ToolErrorKind(str, Enum):
    """Kinds of tool failures recorded in history. These are never raised."""
    UNKNOWN_TOOL = "unknown_tool"
    EXECUTION_FAILED = "execution_failed"


class ToolError(BaseModel):
    """A tool failure captured as data so the model can self-correct."""
    model_config = ConfigDict(frozen=True)

    kind: ToolErrorKind
    message: str


# =============================================================================
# Client payload and response
# =============================================================================


class Message(BaseModel):
    """
    A message in the payload sent to a model client.

    Attributes:
        role: The role of the entity that produced the message.
        content: The textual content of the message.
        tool_calls: Tool calls requested by an assistant message.
        tool_call_id: For tool messages, the id of the call being answered.
        name: For tool messages, the tool name.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: Role
    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


class ModelResponse(BaseModel):
    """Normalized reply of a model client: text plus the tool calls it requests, in order."""
    model_config = ConfigDict(frozen=True)

    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()

    @field_validator("content", mode="before")
    @classmethod
    def none_content_is_empty(cls, v: Any) -> Any:
        """Assistant messages that only carry tool calls have no content."""
        return "" if v is None else v

    @classmethod
    def from_chat_completion(cls, response: Dict[str, Any]) -> "ModelResponse":
        """
        Build a ModelResponse from an OpenAI-style chat completion dictionary.

        All tool calls of the first choice are kept, in the order returned.

        Raises:
            ValueError: If the response has no choices or a tool call carries
                        arguments that are not valid JSON.
        """
        choices = response.get("choices") or []
        if not choices:
            raise ValueError("Chat completion response contains no choices.")
        message = choices[0].get("message", {}) or {}

        tool_calls = []
        for raw_call in message.get("tool_calls") or []:
            function_data = raw_call.get("function", {})
            raw_arguments = function_data.get("arguments") or "{}"
            if isinstance(raw_arguments, dict):
                arguments = raw_arguments
            else:
                try:
                    arguments = json.loads(raw_arguments)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        f"Malformed arguments for tool call '{function_data.get('name', '')}': {e}"
                    ) from e
            tool_calls.append(ToolCall(
                id=raw_call.get("id") or str(uuid.uuid4()),
                name=function_data.get("name", ""),
                arguments=arguments,
            ))
        return cls(content=message.get("content"), tool_calls=tuple(tool_calls))


# =============================================================================
# History entries
# =============================================================================


class UserPrompt(BaseModel):
    """A prompt attached by the caller. ``text`` is the raw, unexpanded template."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["user_prompt"] = "user_prompt"
    text: str
    source: Optional[str] = Field(default=None, description="File the prompt was read from, if any.")
    timestamp: datetime = Field(default_factory=_utc_now)


class ModelReply(BaseModel):
    """
    A reply received from the model.

    ``sent_prompt`` is the expanded user message carried by the request that
    produced this reply, or None when that request only carried tool results.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["model_reply"] = "model_reply"
    text: str
    tool_calls: Tuple[ToolCall, ...] = ()
    sent_prompt: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)


class ToolInvocation(BaseModel):
    """The outcome of one requested tool call: a result or a recorded error."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["tool_invocation"] = "tool_invocation"
    call_id: str
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[str] = None
    error: Optional[ToolError] = None
    timestamp: datetime = Field(default_factory=_utc_now)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_content(self) -> str:
        """Text handed back to the model for this invocation."""
        if self.error is not None:
            return f"ERROR ({self.error.kind.value}): {self.error.message}"
        return self.result or ""


HistoryEntry = Annotated[
    Union[UserPrompt, ModelReply, ToolInvocation],
    Field(discriminator="kind"),
]

HistoryEntryList = TypeAdapter(List[HistoryEntry])
