"""Exception types shared across the analytics engine."""
from __future__ import annotations

from typing import Optional


class MultiraterError(Exception):
    """Base class for every error raised by multirater."""

    def __init__(self, message: str, reason: Optional[object] = None) -> None:
        super().__init__(message)
        self.reason = reason


class ValidationError(MultiraterError):
    """Raised when input data fails validation rules."""


class ConfigurationError(MultiraterError):
    """Raised when a record references a question or competency that is not defined."""


class InsufficientDataError(MultiraterError):
    """Raised when a caller demands an aggregate that has no contributing ratings."""


__all__ = [
    "ConfigurationError",
    "InsufficientDataError",
    "MultiraterError",
    "ValidationError",
]
