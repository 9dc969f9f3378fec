"""Matching & recommendation core package."""

from .core import MatchCore
from .errors import (
    ConflictError,
    MatchCoreError,
    NotFoundError,
    ScoringTimeoutError,
    StorageError,
    ValidationError,
)

__all__ = [
    "MatchCore",
    "MatchCoreError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ScoringTimeoutError",
    "StorageError",
]
