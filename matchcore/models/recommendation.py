"""Recommendation data models.

Pure data structures for scored candidates and cached candidate lists.
None of these are persisted to durable storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class FairnessBoost(Enum):
    """Which fairness tier was applied to a candidate."""
    NONE = "none"
    NEW_USER = "new_user"
    UNDER_LIKED = "under_liked"


@dataclass(frozen=True)
class ScoreFactors:
    """Per-factor sub-scores, each in [0, 100]."""
    interest: float = 0.0
    age: float = 0.0
    proximity: float = 0.0
    activity: float = 0.0
    reciprocity: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "interest": self.interest,
            "age": self.age,
            "proximity": self.proximity,
            "activity": self.activity,
            "reciprocity": self.reciprocity,
        }


@dataclass(frozen=True)
class CandidateScore:
    """A scored candidate for one recommendation request."""
    candidate_id: str
    raw_score: float
    adjusted_score: float | None = None
    position: int | None = None
    factors: ScoreFactors = dataclass_field(default_factory=ScoreFactors)
    last_active_at: datetime | None = None
    boost: FairnessBoost = FairnessBoost.NONE

    @property
    def score(self) -> float:
        """The score used for ranking (adjusted when available)."""
        return self.raw_score if self.adjusted_score is None else self.adjusted_score

    def with_position(self, position: int) -> "CandidateScore":
        return replace(self, position=position)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "candidate_id": self.candidate_id,
            "score": self.score,
            "raw_score": self.raw_score,
            "adjusted_score": self.adjusted_score,
            "position": self.position,
            "boost": self.boost.value,
            "factors": self.factors.to_dict(),
        }


@dataclass
class RecommendationCacheEntry:
    """A user's ranked candidate list held by the recommendation cache."""
    user_id: str
    candidates: list[CandidateScore] = dataclass_field(default_factory=list)
    computed_at: datetime | None = None
    ttl_seconds: int = 300

    @property
    def candidate_ids(self) -> list[str]:
        return [c.candidate_id for c in self.candidates]

    def expires_at(self) -> datetime:
        return self.computed_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at()

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "candidates": [c.to_dict() for c in self.candidates],
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
            "ttl_seconds": self.ttl_seconds,
        }
