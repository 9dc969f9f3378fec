"""Swipe and match data models.

Pure data structures with no business logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class SwipeAction(Enum):
    """Directional decision one user records about another."""
    LIKE = "like"
    SUPER_LIKE = "super_like"
    PASS = "pass"

    @property
    def can_match(self) -> bool:
        """Whether this action can complete a mutual like."""
        return self in (SwipeAction.LIKE, SwipeAction.SUPER_LIKE)

    @classmethod
    def from_string(cls, value: str) -> "SwipeAction":
        """Parse an action name, case-insensitive."""
        if value is None:
            raise ValueError("Swipe action cannot be null")
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid swipe action: {value}") from None


class MatchStatus(Enum):
    """Lifecycle status of a match."""
    ACTIVE = "active"
    UNMATCHED = "unmatched"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class Swipe:
    """A recorded swipe. At most one per (actor, target) pair."""
    actor_id: str
    target_id: str
    action: SwipeAction
    swiped_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "actor_id": self.actor_id,
            "target_id": self.target_id,
            "action": self.action.value,
            "swiped_at": self.swiped_at.isoformat(),
        }


@dataclass(frozen=True)
class Match:
    """Canonical match row for an unordered pair of users."""
    match_id: str
    user_low: str
    user_high: str
    matched_at: datetime
    status: MatchStatus = MatchStatus.ACTIVE

    def __post_init__(self):
        if not self.user_low < self.user_high:
            raise ValueError(
                f"Match pair must be canonical: {self.user_low!r} < {self.user_high!r}"
            )

    @staticmethod
    def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
        """Order two user ids so the lower one comes first."""
        if user_a == user_b:
            raise ValueError("A match needs two distinct users")
        return (user_a, user_b) if user_a < user_b else (user_b, user_a)

    @classmethod
    def create(cls, user_a: str, user_b: str, matched_at: datetime) -> "Match":
        """Create a new active match with a fresh id."""
        low, high = cls.canonical_pair(user_a, user_b)
        return cls(match_id=uuid.uuid4().hex, user_low=low, user_high=high, matched_at=matched_at)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_low, self.user_high)

    def other_user(self, user_id: str) -> str:
        if user_id == self.user_low:
            return self.user_high
        if user_id == self.user_high:
            return self.user_low
        raise ValueError(f"User {user_id} is not part of match {self.match_id}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "match_id": self.match_id,
            "user_low": self.user_low,
            "user_high": self.user_high,
            "matched_at": self.matched_at.isoformat(),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class MatchCreatedEvent:
    """Fire-and-forget notification that a new match row exists."""
    match_id: str
    user_low: str
    user_high: str
    matched_at: datetime

    @classmethod
    def from_match(cls, match: Match) -> "MatchCreatedEvent":
        return cls(
            match_id=match.match_id,
            user_low=match.user_low,
            user_high=match.user_high,
            matched_at=match.matched_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_id": self.match_id,
            "user_low": self.user_low,
            "user_high": self.user_high,
            "matched_at": self.matched_at.isoformat(),
        }


@dataclass
class SwipeResult:
    """Outcome of recording a swipe."""
    is_match: bool
    swipe: Swipe
    match_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_match": self.is_match,
            "match_id": self.match_id,
            "swipe": self.swipe.to_dict(),
        }
