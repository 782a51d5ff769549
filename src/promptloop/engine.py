# src/promptloop/engine.py
"""
The bounded send / dispatch / append loop.

Pattern:
    SENDING → (SETTLED | TOOL_DISPATCH) → SENDING → ... → (SETTLED | BOUND_EXCEEDED)

Each iteration sends the conversation to the model client, appends the
reply, and, when the reply requests tool calls, resolves them through the
tool registry and appends one ToolInvocation per call in request order.
The loop ends when a reply requests no tools (SETTLED) or when the
iteration bound is reached (BOUND_EXCEEDED). Tool failures are recorded in
history and handed back to the model; endpoint failures, cancellation and
bound exhaustion under the strict policy are raised to the caller together
with the last consistent session.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

from .config.models import BoundPolicy, LoopConfig
from .exceptions import (ConfigError, EndpointError, LoopBoundExceededError,
                         LoopCancelledError, ToolFailureBudgetExceededError)
from .models import Message, ModelReply, ModelResponse, ToolCall, ToolInvocation

if TYPE_CHECKING:
    from .providers.base import BaseModelClient
    from .session import Session
    from .tools import ToolRegistry

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    """States of the loop state machine."""

    IDLE = "idle"
    SENDING = "sending"
    TOOL_DISPATCH = "tool_dispatch"
    SETTLED = "settled"
    BOUND_EXCEEDED = "bound_exceeded"
    CANCELLED = "cancelled"


class LoopEngine:
    """
    Drives one loop run over a session.

    An engine instance is created per ``Session.loop`` call; ``state`` and
    ``iterations`` describe that run.

    Args:
        client: Model client used for every iteration.
        registry: Tool registry used to resolve tool calls (read only).
        config: Loop configuration.
    """

    def __init__(
        self,
        client: Optional["BaseModelClient"],
        registry: "ToolRegistry",
        config: Optional[LoopConfig] = None,
    ):
        self.client = client
        self.registry = registry
        self.config = config or LoopConfig()
        self.state = LoopState.IDLE
        self.iterations = 0
        self._consecutive_failures = 0

    def resolve_bound(self, max_loops: Optional[int]) -> int:
        """``None`` or 0 selects the configured default bound; there is no unlimited mode."""
        if max_loops is None or max_loops == 0:
            return self.config.default_max_loops
        if max_loops < 0:
            raise ValueError(f"max_loops must be non-negative, got {max_loops}")
        return max_loops

    async def run(
        self,
        session: "Session",
        max_loops: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
        bound_policy: Optional[Union[BoundPolicy, str]] = None,
    ) -> "Session":
        """
        Run the loop until the model settles or the bound is reached.

        Returns:
            The derived session, with status SETTLED or (lenient policy)
            BOUND_EXCEEDED. A session with nothing to send is returned as is.

        Raises:
            LoopBoundExceededError: Bound reached under the strict policy.
            LoopCancelledError: ``cancel_event`` was set.
            EndpointError: The model client failed.
            ToolFailureBudgetExceededError: Too many consecutive tool failures.
            TemplateVariableError: A pending prompt has unbound variables and
                                   the template policy is 'error'.
            ConfigError: The session has no model client.
        """
        bound = self.resolve_bound(max_loops)
        policy = BoundPolicy(bound_policy) if bound_policy is not None else self.config.bound_policy

        if not session.conversation.has_pending_input():
            logger.debug("Nothing pending since the last reply; loop not started.")
            return session
        if self.client is None:
            raise ConfigError("Session has no model client; use Session.with_client().")

        logger.info(f"Starting loop on model '{session.model}' (max_loops={bound}, policy={policy.value})")

        # A previous run may have stopped between the tool calls of its last reply.
        unanswered = session.conversation.unanswered_tool_calls()
        if unanswered:
            logger.info(f"Resuming {len(unanswered)} unanswered tool call(s) before sending")
            self._transition(LoopState.TOOL_DISPATCH)
            session = await self._dispatch(session, unanswered, cancel_event)

        while True:
            self._transition(LoopState.SENDING)
            self._check_cancelled(cancel_event, session)

            sent_prompt = session.expand_pending_prompts()
            messages = session.build_messages(pending_text=sent_prompt)
            response = await self._send(session, messages)

            reply = ModelReply(
                text=response.content,
                tool_calls=response.tool_calls,
                sent_prompt=sent_prompt,
            )
            session = session.append_entry(reply)
            self.iterations += 1

            if not reply.tool_calls:
                self._transition(LoopState.SETTLED)
                logger.info(f"Loop settled after {self.iterations} iteration(s)")
                return session.with_status(LoopState.SETTLED)

            self._transition(LoopState.TOOL_DISPATCH)
            session = await self._dispatch(session, reply.tool_calls, cancel_event)

            if self.iterations >= bound:
                self._transition(LoopState.BOUND_EXCEEDED)
                session = session.with_status(LoopState.BOUND_EXCEEDED)
                logger.warning(f"Loop bound of {bound} iteration(s) reached with tool calls still pending")
                if policy == BoundPolicy.STRICT:
                    raise LoopBoundExceededError(bound, session=session)
                return session

    def _transition(self, state: LoopState) -> None:
        logger.debug(f"Loop state {self.state.value} -> {state.value}")
        self.state = state

    def _check_cancelled(self, cancel_event: Optional[asyncio.Event], session: "Session") -> None:
        if cancel_event is not None and cancel_event.is_set():
            self._transition(LoopState.CANCELLED)
            logger.info(f"Loop cancelled after {self.iterations} iteration(s)")
            raise LoopCancelledError(session=session.with_status(LoopState.CANCELLED))

    async def _send(self, session: "Session", messages: Sequence[Message]) -> ModelResponse:
        """Call the model client; every failure becomes an EndpointError carrying ``session``."""
        client_name = self.client.get_name()
        timeout = self.config.request_timeout_seconds
        tools = self.registry.get_tool_definitions()
        logger.debug(f"Sending {len(messages)} message(s) and {len(tools)} tool(s) to '{client_name}'")
        try:
            call = self.client.send(messages, tools, session.model)
            if timeout is not None:
                response = await asyncio.wait_for(call, timeout)
            else:
                response = await call
            if isinstance(response, dict):
                response = ModelResponse.from_chat_completion(response)
        except EndpointError as e:
            if e.session is None:
                e.session = session
            raise
        except asyncio.TimeoutError as e:
            raise EndpointError(client_name, f"Model call timed out after {timeout}s.", session=session) from e
        except Exception as e:
            logger.error(f"Model client '{client_name}' failed: {e}", exc_info=True)
            raise EndpointError(client_name, str(e), session=session) from e

        if not isinstance(response, ModelResponse):
            raise EndpointError(
                client_name, f"Unexpected response type {type(response).__name__}.", session=session
            )
        return response

    async def _dispatch(
        self,
        session: "Session",
        tool_calls: Sequence[ToolCall],
        cancel_event: Optional[asyncio.Event],
    ) -> "Session":
        """
        Resolve ``tool_calls`` in request order, appending one entry per call.

        Concurrent results are all appended before the failure budget is
        checked, so no executed call is left without its entry.
        """
        if self.config.concurrent_tools and len(tool_calls) > 1:
            self._check_cancelled(cancel_event, session)
            invocations: List[ToolInvocation] = await asyncio.gather(
                *(self.registry.execute_tool(call) for call in tool_calls)
            )
            exhausted_at = None
            for invocation in invocations:
                session = self._record(session, invocation)
                if exhausted_at is None and self._budget_exhausted():
                    exhausted_at = self._consecutive_failures
            if exhausted_at is not None:
                self._raise_budget_exceeded(exhausted_at, session)
            return session

        for call in tool_calls:
            self._check_cancelled(cancel_event, session)
            invocation = await self.registry.execute_tool(call)
            session = self._record(session, invocation)
            if self._budget_exhausted():
                self._raise_budget_exceeded(self._consecutive_failures, session)
        return session

    def _record(self, session: "Session", invocation: ToolInvocation) -> "Session":
        if invocation.failed:
            self._consecutive_failures += 1
        else:
            self._consecutive_failures = 0
        return session.append_entry(invocation)

    def _budget_exhausted(self) -> bool:
        budget = self.config.max_consecutive_tool_failures
        return budget is not None and self._consecutive_failures >= budget

    def _raise_budget_exceeded(self, failures: int, session: "Session") -> None:
        logger.error(f"{failures} consecutive tool failures; aborting loop")
        raise ToolFailureBudgetExceededError(failures, session=session)
