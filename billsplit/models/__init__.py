"""Shared model base for the bill splitter's persisted records."""

from .base import BaseModel

__all__ = ["BaseModel"]
