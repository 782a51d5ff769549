# src/promptloop/history.py
"""
Append-only conversation history with structural sharing.

A ConversationHistory is a persistent singly linked chain: every node holds
one entry and a reference to the history it was appended to. Appending
creates a new node in O(1) and never touches the parent, so any number of
sessions derived from the same snapshot share their common prefix and
cannot observe each other's appends.
"""

import json
import logging
from typing import Iterator, List, Optional, Sequence, Tuple, Type, TypeVar

from .models import HistoryEntryList, ModelReply, ToolCall, ToolInvocation, UserPrompt

logger = logging.getLogger(__name__)

E = TypeVar("E")


class ConversationHistory:
    """Ordered, immutable log of user prompts, model replies and tool invocations."""

    __slots__ = ("_entry", "_parent", "_length", "_cache")

    def __init__(self, entry=None, parent: Optional["ConversationHistory"] = None):
        if entry is None and parent is not None:
            raise ValueError("Only the empty history may have no entry.")
        self._entry = entry
        self._parent = parent
        self._length = 0 if entry is None else (parent._length if parent else 0) + 1
        self._cache: Optional[Tuple] = None

    @classmethod
    def empty(cls) -> "ConversationHistory":
        return cls()

    @classmethod
    def from_entries(cls, entries: Sequence) -> "ConversationHistory":
        history = cls.empty()
        for entry in entries:
            history = history.append(entry)
        return history

    def append(self, entry) -> "ConversationHistory":
        """Return a new history with ``entry`` appended; ``self`` is unchanged."""
        return ConversationHistory(entry, self if self._length else None)

    def extend(self, entries: Sequence) -> "ConversationHistory":
        history = self
        for entry in entries:
            history = history.append(entry)
        return history

    @property
    def entries(self) -> Tuple:
        """All entries in insertion order."""
        if self._cache is None:
            chain = []
            node: Optional[ConversationHistory] = self
            while node is not None and node._entry is not None:
                if node._cache is not None:
                    chain.extend(reversed(node._cache))
                    break
                chain.append(node._entry)
                node = node._parent
            self._cache = tuple(reversed(chain))
        return self._cache

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator:
        return iter(self.entries)

    def __getitem__(self, index):
        return self.entries[index]

    def __bool__(self) -> bool:
        return self._length > 0

    def __repr__(self) -> str:
        return f"ConversationHistory(len={self._length})"

    @property
    def last(self):
        return self._entry

    def last_of(self, kind: Type[E]) -> Optional[E]:
        """Return the most recent entry of the given type, walking back from the tip."""
        node: Optional[ConversationHistory] = self
        while node is not None and node._entry is not None:
            if isinstance(node._entry, kind):
                return node._entry
            node = node._parent
        return None

    def pending_prompts(self) -> List[UserPrompt]:
        """User prompts appended after the most recent model reply, in insertion order."""
        pending: List[UserPrompt] = []
        node: Optional[ConversationHistory] = self
        while node is not None and node._entry is not None:
            if isinstance(node._entry, ModelReply):
                break
            if isinstance(node._entry, UserPrompt):
                pending.append(node._entry)
            node = node._parent
        pending.reverse()
        return pending

    def unanswered_tool_calls(self) -> List[ToolCall]:
        """
        Tool calls of the most recent reply that have no ToolInvocation yet.

        Non-empty only for a history cut short between the tool calls of one
        reply (cancellation, failure budget), in request order.
        """
        answered = set()
        node: Optional[ConversationHistory] = self
        while node is not None and node._entry is not None:
            entry = node._entry
            if isinstance(entry, ToolInvocation):
                answered.add(entry.call_id)
            elif isinstance(entry, ModelReply):
                return [call for call in entry.tool_calls if call.id not in answered]
            node = node._parent
        return []

    def has_pending_input(self) -> bool:
        """True when something was appended after the last reply or its tool calls are not all answered."""
        if self._entry is None:
            return False
        if not isinstance(self._entry, ModelReply):
            return True
        return bool(self._entry.tool_calls)

    def render(self) -> List[str]:
        """Human-readable projection of every entry, in insertion order."""
        return [render_entry(entry) for entry in self.entries]

    def to_json(self) -> str:
        """Serialize the entries so the conversation can be stored and replayed."""
        return HistoryEntryList.dump_json(list(self.entries)).decode("utf-8")

    @classmethod
    def from_json(cls, data: str) -> "ConversationHistory":
        return cls.from_entries(HistoryEntryList.validate_json(data))


def render_entry(entry) -> str:
    """Render one history entry as a single display string."""
    if isinstance(entry, UserPrompt):
        if entry.source:
            return f"Prompt [{entry.source}]: {entry.text}"
        return f"Prompt: {entry.text}"
    if isinstance(entry, ModelReply):
        lines = [f"Reply: {entry.text}"]
        for call in entry.tool_calls:
            lines.append(f"  Tool request: {call.name}({json.dumps(call.arguments, sort_keys=True)})")
        return "\n".join(lines)
    if isinstance(entry, ToolInvocation):
        if entry.error is not None:
            return f"Tool [✗] {entry.tool_name}: {entry.error.kind.value}: {entry.error.message}"
        return f"Tool [✓] {entry.tool_name}: {entry.result}"
    logger.warning(f"Unknown history entry type: {type(entry).__name__}")
    return str(entry)
