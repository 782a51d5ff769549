# src/promptloop/session.py
"""
Immutable language-model sessions.

A Session is a snapshot of a conversation: its history, its prompt
variables and the model it talks to. Every operation that changes
something returns a new Session and leaves the original untouched;
derived sessions share their unmodified parts (including the common
history prefix) with the session they were derived from.

Usage:
    session = (
        new_session("gpt-4o", client=my_client)
        .with_prompt("Summarize ${topic} in one paragraph.")
        .with_prompt_var("topic", "structural sharing")
    )
    session = await session.loop(max_loops=5)
    print(session.last_reply())
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .config.loader import load_config
from .config.models import BoundPolicy, PromptLoopConfig
from .engine import LoopEngine, LoopState
from .exceptions import NoReplyYetError, ResourceUnavailableError
from .files import load_prompt_file
from .history import ConversationHistory
from .models import Message, ModelReply, Role, ToolInvocation, UserPrompt
from .providers.base import BaseModelClient
from .templates import VariableBindings, expand
from .tools import ToolRegistry, default_registry

logger = logging.getLogger(__name__)

# Separator used when several pending prompts are sent as one message.
PROMPT_SEPARATOR = "\n\n"


@dataclass(frozen=True, eq=False)
class Session:
    """
    Immutable conversation snapshot.

    Attributes:
        model: Model identifier passed to the client.
        config: Effective configuration.
        conversation: Append-only history of entries.
        bindings: Prompt variables used at send time.
        registry: Tool catalog offered to the model (referenced, not owned).
        client: Model client used by :meth:`loop`.
        status: SETTLED or BOUND_EXCEEDED after a loop, IDLE otherwise.
    """

    model: str
    config: PromptLoopConfig = field(default_factory=PromptLoopConfig)
    conversation: ConversationHistory = field(default_factory=ConversationHistory.empty)
    bindings: VariableBindings = field(default_factory=VariableBindings)
    registry: ToolRegistry = field(default=default_registry)
    client: Optional[BaseModelClient] = None
    status: LoopState = LoopState.IDLE

    @classmethod
    def create(
        cls,
        model: Optional[str] = None,
        *,
        client: Optional[BaseModelClient] = None,
        registry: Optional[ToolRegistry] = None,
        config: Optional[PromptLoopConfig] = None,
    ) -> "Session":
        """
        Create an empty session.

        Args:
            model: Model to use; ``config.default_model`` when omitted or empty.
            client: Model client used by :meth:`loop`.
            registry: Tool registry; the process-wide default registry when omitted.
            config: Configuration; loaded with :func:`load_config` when omitted.
        """
        config = config or load_config()
        session = cls(
            model=model or config.default_model,
            config=config,
            registry=registry if registry is not None else default_registry,
            client=client,
        )
        logger.debug(f"Created session for model '{session.model}'")
        return session

    # ------------------------------------------------------------------
    # Derivations
    # ------------------------------------------------------------------

    def with_prompt(self, prompt: str, source: Optional[str] = None) -> "Session":
        """
        Append a prompt.

        ``$name`` and ``${name}`` placeholders are kept unexpanded until the
        prompt is sent. Any other ``$``, including ``$$``, is sent as written.
        """
        return self.append_entry(UserPrompt(text=prompt, source=source)).with_status(LoopState.IDLE)

    def with_prompt_var(self, name: str, value: str) -> "Session":
        """Set a variable for prompt expansion, overwriting any previous value."""
        return dataclasses.replace(self, bindings=self.bindings.set(name, value))

    def with_prompt_file(self, contents: Optional[str], source: Optional[str] = None) -> "Session":
        """
        Append the contents of a file as a prompt.

        Raises:
            ResourceUnavailableError: If ``contents`` is None (the file could not be loaded).
        """
        if contents is None:
            raise ResourceUnavailableError(source or "Unknown", "No prompt file contents supplied.")
        return self.with_prompt(contents, source=source)

    async def with_prompt_from_path(self, path: Union[str, Path]) -> "Session":
        """Load ``path`` and append its contents as a prompt."""
        contents = await load_prompt_file(path)
        return self.with_prompt_file(contents, source=str(path))

    def with_client(self, client: BaseModelClient) -> "Session":
        return dataclasses.replace(self, client=client)

    def with_registry(self, registry: ToolRegistry) -> "Session":
        return dataclasses.replace(self, registry=registry)

    def with_status(self, status: LoopState) -> "Session":
        if status == self.status:
            return self
        return dataclasses.replace(self, status=status)

    def append_entry(self, entry) -> "Session":
        """Return a session whose history has ``entry`` appended."""
        return dataclasses.replace(self, conversation=self.conversation.append(entry))

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def loop(
        self,
        max_loops: Optional[int] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        bound_policy: Optional[Union[BoundPolicy, str]] = None,
    ) -> "Session":
        """
        Send the conversation to the model, process replies and tool calls, and repeat.

        Args:
            max_loops: Maximum number of model calls. None or 0 uses
                       ``config.loop.default_max_loops``.
            cancel_event: Checked before every model call and tool invocation.
            bound_policy: Overrides ``config.loop.bound_policy`` for this call.

        Returns:
            A new session; this one is unchanged.
        """
        engine = LoopEngine(client=self.client, registry=self.registry, config=self.config.loop)
        return await engine.run(self, max_loops=max_loops, cancel_event=cancel_event, bound_policy=bound_policy)

    def expand_pending_prompts(self) -> Optional[str]:
        """Expand the prompts appended since the last reply into the message to send, or None."""
        pending = self.conversation.pending_prompts()
        if not pending:
            return None
        return self._expand_prompts(pending)

    def build_messages(self, pending_text: Optional[str] = None) -> List[Message]:
        """
        Build the payload sent to the model client.

        Prompts that were already answered are replayed exactly as they were
        sent (``ModelReply.sent_prompt``). Pending prompts are represented by
        ``pending_text``, or expanded with the current bindings when it is not given.
        """
        messages: List[Message] = []
        buffered: List[UserPrompt] = []
        for entry in self.conversation:
            if isinstance(entry, UserPrompt):
                buffered.append(entry)
            elif isinstance(entry, ModelReply):
                if buffered:
                    text = entry.sent_prompt if entry.sent_prompt is not None else self._expand_prompts(buffered)
                    messages.append(Message(role=Role.USER, content=text))
                    buffered = []
                messages.append(Message(role=Role.ASSISTANT, content=entry.text, tool_calls=entry.tool_calls))
            elif isinstance(entry, ToolInvocation):
                messages.append(Message(
                    role=Role.TOOL,
                    content=entry.as_content(),
                    tool_call_id=entry.call_id,
                    name=entry.tool_name,
                ))
        if buffered:
            text = pending_text if pending_text is not None else self._expand_prompts(buffered)
            messages.append(Message(role=Role.USER, content=text))
        return messages

    def _expand_prompts(self, prompts: List[UserPrompt]) -> str:
        policy = self.config.templates.undefined_variables
        return PROMPT_SEPARATOR.join(expand(p.text, self.bindings, policy) for p in prompts)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def entries(self) -> Tuple:
        return self.conversation.entries

    def pending_prompts(self) -> List[UserPrompt]:
        return self.conversation.pending_prompts()

    def last_reply(self) -> str:
        """
        Return the text of the most recent model reply.

        Raises:
            NoReplyYetError: If the model has not replied yet.
        """
        reply = self.conversation.last_of(ModelReply)
        if reply is None:
            raise NoReplyYetError()
        return reply.text

    def history(self) -> List[str]:
        """Human-readable rendering of every history entry, in order."""
        return self.conversation.render()

    def tools(self) -> str:
        """Documentation of the tools available to this session."""
        return self.registry.render_docs()

    def __repr__(self) -> str:
        return (
            f"Session(model={self.model!r}, entries={len(self.conversation)}, "
            f"bindings={len(self.bindings)}, status={self.status.value})"
        )


def new_session(
    model: Optional[str] = None,
    *,
    client: Optional[BaseModelClient] = None,
    registry: Optional[ToolRegistry] = None,
    config: Optional[PromptLoopConfig] = None,
) -> Session:
    """Create an empty session. See :meth:`Session.create`."""
    return Session.create(model, client=client, registry=registry, config=config)
