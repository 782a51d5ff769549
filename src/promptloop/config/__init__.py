# src/promptloop/config/__init__.py
"""
Configuration for promptloop.

Pydantic models describe and validate the settings; ``load_config`` layers
the packaged defaults, user TOML files, dictionaries and environment
variables on top of each other.
"""

from .loader import load_config, load_default_config
from .models import (BoundPolicy, LoopConfig, PromptLoopConfig, TemplateConfig,
                     UndefinedVariablePolicy)

__all__ = [
    "BoundPolicy",
    "LoopConfig",
    "PromptLoopConfig",
    "TemplateConfig",
    "UndefinedVariablePolicy",
    "load_config",
    "load_default_config",
]
