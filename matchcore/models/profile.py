"""Profile data models.

Pure data structures with no business logic.
Profiles and preferences are owned by the external profile store and are
read-only snapshots here.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class Gender(Enum):
    """Profile gender."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: str) -> "Gender":
        """Parse a gender name, case-insensitive."""
        if value is None:
            raise ValueError("Gender value cannot be null")
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid gender value: {value}") from None


@dataclass(frozen=True)
class Coordinate:
    """A point on the globe in decimal degrees."""
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Coordinate | None":
        if not data or data.get("latitude") is None or data.get("longitude") is None:
            return None
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


def normalize_tags(tags: Any) -> frozenset[str]:
    """Lowercase and strip free-text interest tags, dropping blanks."""
    if not tags:
        return frozenset()
    return frozenset(t.strip().lower() for t in tags if t and t.strip())


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO timestamp. Values without an offset are taken as UTC."""
    if value is None or value == "":
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass(frozen=True)
class Profile:
    """Snapshot of a user's profile as seen by the matching core."""
    user_id: str
    birth_date: date | None
    gender: Gender
    interests: frozenset[str] = frozenset()
    location: Coordinate | None = None
    last_active_at: datetime | None = None
    is_new_user: bool = False
    is_active: bool = True
    # Engagement counters maintained by an external aggregation job
    swipes_received: int = 0
    likes_received: int = 0
    likes_sent: int = 0
    replies_sent: int = 0

    def age_on(self, today: date) -> int | None:
        """Age in whole years on the given day."""
        if self.birth_date is None:
            return None
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years

    @property
    def like_ratio(self) -> float | None:
        """Likes received per swipe received, None without exposure."""
        if self.swipes_received <= 0:
            return None
        return self.likes_received / self.swipes_received

    @property
    def engagement_rate(self) -> float:
        """Replies sent per swipe received."""
        if self.swipes_received <= 0:
            return 0.0
        return self.replies_sent / self.swipes_received

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "gender": self.gender.value,
            "interests": sorted(self.interests),
            "location": self.location.to_dict() if self.location else None,
            "last_active_at": self.last_active_at.isoformat() if self.last_active_at else None,
            "is_new_user": self.is_new_user,
            "is_active": self.is_active,
            "swipes_received": self.swipes_received,
            "likes_received": self.likes_received,
            "likes_sent": self.likes_sent,
            "replies_sent": self.replies_sent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        """Create from dictionary."""
        return cls(
            user_id=str(data["user_id"]),
            birth_date=_parse_date(data.get("birth_date")),
            gender=Gender.from_string(data.get("gender", "other")),
            interests=normalize_tags(data.get("interests", [])),
            location=Coordinate.from_dict(data.get("location")),
            last_active_at=parse_datetime(data.get("last_active_at")),
            is_new_user=bool(data.get("is_new_user", False)),
            is_active=bool(data.get("is_active", True)),
            swipes_received=int(data.get("swipes_received", 0)),
            likes_received=int(data.get("likes_received", 0)),
            likes_sent=int(data.get("likes_sent", 0)),
            replies_sent=int(data.get("replies_sent", 0)),
        )


@dataclass(frozen=True)
class Preferences:
    """Who a user wants to see."""
    user_id: str
    min_age: int = 18
    max_age: int = 100
    max_distance_km: float = 50.0
    interested_in: frozenset[Gender] = frozenset()  # empty means any
    dealbreakers: frozenset[str] = dataclass_field(default_factory=frozenset)

    def accepts_gender(self, gender: Gender) -> bool:
        return not self.interested_in or gender in self.interested_in

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "min_age": self.min_age,
            "max_age": self.max_age,
            "max_distance_km": self.max_distance_km,
            "interested_in": sorted(g.value for g in self.interested_in),
            "dealbreakers": sorted(self.dealbreakers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, default_max_distance_km: float = 50.0) -> "Preferences":
        """Create from dictionary."""
        return cls(
            user_id=str(data["user_id"]),
            min_age=int(data.get("min_age", 18)),
            max_age=int(data.get("max_age", 100)),
            max_distance_km=float(data.get("max_distance_km", default_max_distance_km)),
            interested_in=frozenset(Gender.from_string(g) for g in data.get("interested_in", [])),
            dealbreakers=normalize_tags(data.get("dealbreakers", [])),
        )


@dataclass
class PopulationStats:
    """Population averages computed by an external aggregation job."""
    mean_engagement_rate: float = 0.0
    mean_like_ratio: float = 0.0

    @classmethod
    def from_profiles(cls, profiles: list[Profile]) -> "PopulationStats":
        """Compute averages over the exposed part of a population."""
        exposed = [p for p in profiles if p.swipes_received > 0]
        if not exposed:
            return cls()
        return cls(
            mean_engagement_rate=sum(p.engagement_rate for p in exposed) / len(exposed),
            mean_like_ratio=sum(p.like_ratio for p in exposed) / len(exposed),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "mean_engagement_rate": self.mean_engagement_rate,
            "mean_like_ratio": self.mean_like_ratio,
        }
