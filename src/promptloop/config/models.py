# src/promptloop/config/models.py
"""
Pydantic models for promptloop configuration.

The configuration hierarchy:
    PromptLoopConfig (root)
    ├── LoopConfig      - Iteration bound, bound policy, tool failure budget
    ├── TemplateConfig  - Handling of unbound prompt variables
    └── logging         - Raw logging section (see promptloop.logging_config)

Usage:
    >>> from promptloop.config.models import PromptLoopConfig
    >>> config = PromptLoopConfig()  # All defaults
    >>> config.loop.default_max_loops
    10
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class BoundPolicy(str, Enum):
    """What happens when a loop reaches its iteration bound."""

    STRICT = "strict"  # Raise LoopBoundExceededError carrying the partial session
    LENIENT = "lenient"  # Return the partial session marked BOUND_EXCEEDED


class UndefinedVariablePolicy(str, Enum):
    """How placeholders without a binding are expanded."""

    KEEP = "keep"
    EMPTY = "empty"
    ERROR = "error"


# =============================================================================
# SECTIONS
# =============================================================================


class LoopConfig(BaseModel):
    """Configuration of the send / dispatch loop."""

    model_config = ConfigDict(validate_assignment=True)

    default_max_loops: int = Field(
        default=10,
        ge=1,
        description="Bound used when loop() is called without max_loops or with 0",
    )
    bound_policy: BoundPolicy = Field(
        default=BoundPolicy.STRICT, description="Strict raises, lenient returns the partial session"
    )
    max_consecutive_tool_failures: Optional[int] = Field(
        default=None,
        ge=1,
        description="Abort after this many failed tool invocations in a row (unset = never)",
    )
    concurrent_tools: bool = Field(
        default=False,
        description="Run the tool calls of one reply concurrently (results keep request order)",
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Timeout for a single model call"
    )


class TemplateConfig(BaseModel):
    """Configuration of prompt template expansion."""

    undefined_variables: UndefinedVariablePolicy = Field(
        default=UndefinedVariablePolicy.KEEP,
        description="keep: leave placeholder, empty: substitute '', error: raise",
    )


class PromptLoopConfig(BaseModel):
    """Root configuration object."""

    default_model: str = Field(default="gpt-4o", min_length=1, description="Model used when none is given")
    loop: LoopConfig = Field(default_factory=LoopConfig)
    templates: TemplateConfig = Field(default_factory=TemplateConfig)
    logging: Dict[str, Any] = Field(
        default_factory=dict, description="Logging section passed to configure_logging()"
    )


__all__ = [
    "BoundPolicy",
    "UndefinedVariablePolicy",
    "LoopConfig",
    "TemplateConfig",
    "PromptLoopConfig",
]
