# tests/conftest.py
"""
Shared fixtures for promptloop tests.

Provides a scripted model client that replays canned responses and
records every request, plus fresh configuration and tool registries so
tests never touch the process-wide default registry.
"""

from typing import Any, Callable, List, Optional, Sequence, Union

import pytest

from promptloop.config.models import PromptLoopConfig
from promptloop.models import Message, ModelResponse, Tool, ToolCall
from promptloop.providers.base import BaseModelClient
from promptloop.session import Session
from promptloop.tools import ToolRegistry

ScriptItem = Union[ModelResponse, dict, Exception, Callable[[Sequence[Message]], Any]]


class ScriptedModelClient(BaseModelClient):
    """
    Model client returning scripted responses in order.

    Items may be ModelResponse objects, raw chat-completion dicts, exceptions
    (raised) or callables receiving the messages. When the script runs out,
    the last item is repeated if ``repeat_last`` is set.
    """

    def __init__(self, script: List[ScriptItem], repeat_last: bool = False):
        self.script = list(script)
        self.repeat_last = repeat_last
        self.calls: List[dict] = []

    def get_name(self) -> str:
        return "scripted"

    async def send(self, messages: Sequence[Message], tools: List[Tool], model: Optional[str] = None):
        self.calls.append({"messages": list(messages), "tools": list(tools), "model": model})
        index = len(self.calls) - 1
        if index >= len(self.script):
            if not self.repeat_last or not self.script:
                raise AssertionError("ScriptedModelClient ran out of responses")
            index = len(self.script) - 1
        item = self.script[index]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(messages)
        return item

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def last_user_message(self, call_index: int = -1) -> Optional[str]:
        user_messages = [m for m in self.calls[call_index]["messages"] if m.role == "user"]
        return user_messages[-1].content if user_messages else None


def reply(text: str = "", *calls: ToolCall) -> ModelResponse:
    return ModelResponse(content=text, tool_calls=tuple(calls))


def call(name: str, /, call_id: Optional[str] = None, **arguments: Any) -> ToolCall:
    if call_id is None:
        return ToolCall(name=name, arguments=arguments)
    return ToolCall(id=call_id, name=name, arguments=arguments)


@pytest.fixture
def config() -> PromptLoopConfig:
    """Default configuration, independent of environment variables."""
    return PromptLoopConfig()


@pytest.fixture
def registry() -> ToolRegistry:
    """A fresh registry with a few simple tools."""
    tools = ToolRegistry()

    @tools.tool
    def add(a: int, b: int) -> int:
        """Add two integers."""
        return a + b

    @tools.tool
    async def echo(text: str) -> str:
        """Echo the given text back."""
        return text

    @tools.tool
    def explode() -> str:
        """Always fails."""
        raise RuntimeError("kaboom")

    return tools


@pytest.fixture
def make_session(config, registry):
    """Factory building a session bound to a scripted client."""
    def _make(script: List[ScriptItem], repeat_last: bool = False, **kwargs: Any):
        client = ScriptedModelClient(script, repeat_last=repeat_last)
        session = Session.create(
            kwargs.pop("model", "test-model"),
            client=client,
            registry=kwargs.pop("registry", registry),
            config=kwargs.pop("config", config),
        )
        return session, client

    return _make
