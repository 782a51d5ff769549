# src/promptloop/__init__.py
"""
promptloop - Immutable, tool-dispatching conversational loops for language models.

A Session accumulates prompts and prompt variables, then runs a bounded
loop that sends the conversation to a model client, dispatches the tool
calls the model requests through a ToolRegistry, and records everything
in an append-only, replayable history.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import (BoundPolicy, LoopConfig, PromptLoopConfig, TemplateConfig,
                     UndefinedVariablePolicy, load_config)
from .engine import LoopEngine, LoopState
from .exceptions import (ConfigError, EndpointError, LoopBoundExceededError,
                         LoopCancelledError, LoopError, NoReplyYetError,
                         PromptLoopError, ResourceUnavailableError,
                         TemplateVariableError, ToolFailureBudgetExceededError,
                         ToolRegistrationError)
from .files import load_prompt_file
from .history import ConversationHistory
from .logging_config import configure_logging, log_display
from .models import (Message, ModelReply, ModelResponse, Role, Tool, ToolCall,
                     ToolError, ToolErrorKind, ToolInvocation, UserPrompt)
from .providers import BaseModelClient
from .session import Session, new_session
from .templates import PromptTemplate, VariableBindings, expand
from .tools import ToolRegistry, default_registry, register_tool

try:
    __version__ = version("promptloop")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    # Sessions
    "Session",
    "new_session",
    "LoopEngine",
    "LoopState",
    "ConversationHistory",
    # Models
    "Message",
    "ModelReply",
    "ModelResponse",
    "Role",
    "Tool",
    "ToolCall",
    "ToolError",
    "ToolErrorKind",
    "ToolInvocation",
    "UserPrompt",
    # Templates
    "PromptTemplate",
    "VariableBindings",
    "expand",
    # Tools
    "ToolRegistry",
    "default_registry",
    "register_tool",
    # Clients and files
    "BaseModelClient",
    "load_prompt_file",
    # Configuration and logging
    "BoundPolicy",
    "LoopConfig",
    "PromptLoopConfig",
    "TemplateConfig",
    "UndefinedVariablePolicy",
    "load_config",
    "configure_logging",
    "log_display",
    # Exceptions
    "PromptLoopError",
    "ConfigError",
    "ResourceUnavailableError",
    "NoReplyYetError",
    "TemplateVariableError",
    "ToolRegistrationError",
    "LoopError",
    "LoopBoundExceededError",
    "LoopCancelledError",
    "EndpointError",
    "ToolFailureBudgetExceededError",
    "__version__",
]
