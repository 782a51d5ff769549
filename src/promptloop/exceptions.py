# src/promptloop/exceptions.py
"""
Custom exceptions for the promptloop library.

This module defines a hierarchy of custom exception classes to provide
more specific error information and allow for targeted error handling
by applications driving prompt loops.

Tool-level problems (unknown tool names, tools that raise) are *not*
represented here: they are recorded in the conversation history and handed
back to the model. Everything below propagates to the caller.
"""

from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from .session import Session


class PromptLoopError(Exception):
    """Base class for all promptloop specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in promptloop."):
        super().__init__(message)

class ConfigError(PromptLoopError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ResourceUnavailableError(PromptLoopError):
    """Raised when prompt content (e.g. a prompt file) cannot be supplied."""
    def __init__(self, source: str = "Unknown", message: str = "Resource unavailable."):
        self.source = source
        super().__init__(f"{message} Source: '{source}'")

class NoReplyYetError(PromptLoopError):
    """Raised when the last reply is requested before the model has replied."""
    def __init__(self, message: str = "No model reply in history yet."):
        super().__init__(message)

class TemplateVariableError(PromptLoopError):
    """Raised when a prompt references variables that are not bound and the policy is 'error'."""
    def __init__(self, names: Iterable[str] = (), message: str = "Undefined prompt variables."):
        self.names = sorted(set(names))
        super().__init__(f"{message} Names: {', '.join(self.names) or '(none)'}")

class ToolRegistrationError(PromptLoopError):
    """Raised when a tool cannot be registered (duplicate or invalid name)."""
    def __init__(self, tool_name: str = "Unknown", message: str = "Tool registration failed."):
        self.tool_name = tool_name
        super().__init__(f"{message} Tool: '{tool_name}'")

class LoopError(PromptLoopError):
    """
    Base class for errors that abort a running loop.

    The ``session`` attribute holds the last consistent Session: every entry
    that was fully appended before the failure, nothing partial.
    """
    def __init__(self, message: str = "Loop aborted.", session: Optional["Session"] = None):
        self.session = session
        super().__init__(message)

class LoopBoundExceededError(LoopError):
    """Raised under the strict policy when the loop reaches its iteration bound."""
    def __init__(self, max_loops: int = 0, session: Optional["Session"] = None, message: str = "Loop bound exceeded."):
        self.max_loops = max_loops
        super().__init__(f"{message} Max loops: {max_loops}", session=session)

class LoopCancelledError(LoopError):
    """Raised when the loop observes its cancellation signal."""
    def __init__(self, session: Optional["Session"] = None, message: str = "Loop cancelled."):
        super().__init__(message, session=session)

class EndpointError(LoopError):
    """Raised for transport or protocol failures of the model endpoint. Fatal to the current loop call."""
    def __init__(self, client_name: str = "Unknown", message: str = "Endpoint error.", session: Optional["Session"] = None):
        self.client_name = client_name
        super().__init__(f"Error with model client '{client_name}': {message}", session=session)

class ToolFailureBudgetExceededError(LoopError):
    """Raised when too many consecutive tool invocations failed."""
    def __init__(self, failures: int = 0, session: Optional["Session"] = None, message: str = "Tool failure budget exhausted."):
        self.failures = failures
        super().__init__(f"{message} Consecutive failures: {failures}", session=session)
