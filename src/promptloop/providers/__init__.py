# src/promptloop/providers/__init__.py
"""Model client interface used by the loop engine."""

from .base import BaseModelClient

__all__ = ["BaseModelClient"]
