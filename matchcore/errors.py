"""Error taxonomy shared by all services.

Interface Contract:
- ValidationError: bad caller input (self-swipe, invalid action, unknown user).
  Surfaced immediately, never retried.
- NotFoundError: a record is missing. Recovered locally during scoring.
- ConflictError: a match insert lost the race. Recovered as success.
- ScoringTimeoutError: candidate scoring exceeded its deadline. Retryable.
- StorageError: the interaction store failed to write. The whole swipe
  may be retried because swipe upserts are idempotent per pair.
"""

from __future__ import annotations


class MatchCoreError(Exception):
    """Base class for all matching core errors."""
    retryable = False


class ValidationError(MatchCoreError):
    """Raised when caller input is invalid."""
    pass


class NotFoundError(MatchCoreError):
    """Raised when a profile, preference set or match does not exist."""
    pass


class ConflictError(MatchCoreError):
    """Raised by a store when a unique pair already exists."""
    pass


class ScoringTimeoutError(MatchCoreError):
    """Raised when candidate scoring exceeds its deadline."""
    retryable = True


class StorageError(MatchCoreError):
    """Raised when the interaction store cannot persist a write."""
    retryable = True
