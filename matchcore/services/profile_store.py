"""Profile Store - Read-only access to profiles and preferences.

Profiles, preferences and block lists are owned by the external user
service. The matching core only reads them.

Interface Contract:
- get_profile(user_id) -> Profile (NotFoundError if missing)
- get_preferences(user_id) -> Preferences (defaults if never set)
- batch_get_profiles(user_ids) -> dict[user_id, Profile]; missing ids omitted
- all_user_ids() -> list[str]
- blocked_user_ids(user_id) -> set[str], blocks in either direction
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Iterable, Protocol

from config import DEFAULT_MAX_DISTANCE_KM, NEW_USER_WINDOW_DAYS
from matchcore.errors import NotFoundError
from matchcore.models import Preferences, Profile, parse_datetime


class ProfileStore(Protocol):
    """What the matching core needs from the user service."""

    def get_profile(self, user_id: str) -> Profile: ...

    def get_preferences(self, user_id: str) -> Preferences: ...

    def batch_get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]: ...

    def all_user_ids(self) -> list[str]: ...

    def blocked_user_ids(self, user_id: str) -> set[str]: ...


class InMemoryProfileStore:
    """Dictionary-backed profile store for tests, the CLI and local runs."""

    def __init__(self, default_max_distance_km: float = DEFAULT_MAX_DISTANCE_KM):
        self._lock = Lock()
        self._profiles: dict[str, Profile] = {}
        self._preferences: dict[str, Preferences] = {}
        self._blocks: set[tuple[str, str]] = set()
        self.default_max_distance_km = default_max_distance_km

    def add_profile(self, profile: Profile) -> None:
        with self._lock:
            self._profiles[profile.user_id] = profile

    def set_preferences(self, preferences: Preferences) -> None:
        with self._lock:
            self._preferences[preferences.user_id] = preferences

    def block(self, blocker_id: str, blocked_id: str) -> None:
        with self._lock:
            self._blocks.add((blocker_id, blocked_id))

    def get_profile(self, user_id: str) -> Profile:
        try:
            return self._profiles[user_id]
        except KeyError:
            raise NotFoundError(f"Profile not found: {user_id}") from None

    def get_preferences(self, user_id: str) -> Preferences:
        if user_id not in self._profiles:
            raise NotFoundError(f"Profile not found: {user_id}")
        prefs = self._preferences.get(user_id)
        if prefs is None:
            prefs = Preferences(user_id=user_id, max_distance_km=self.default_max_distance_km)
        return prefs

    def batch_get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}

    def all_user_ids(self) -> list[str]:
        return list(self._profiles)

    def blocked_user_ids(self, user_id: str) -> set[str]:
        blocked = set()
        for blocker, target in self._blocks:
            if blocker == user_id:
                blocked.add(target)
            elif target == user_id:
                blocked.add(blocker)
        return blocked

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        now: datetime | None = None,
        new_user_window_days: int = NEW_USER_WINDOW_DAYS,
    ) -> "InMemoryProfileStore":
        """Build a store from ``{"profiles": [...], "preferences": [...], "blocks": [...]}``.

        A profile without an explicit ``is_new_user`` flag but with a
        ``created_at`` timestamp is flagged new while it is inside the
        onboarding window.
        """
        now = now or datetime.now(timezone.utc)
        store = cls()
        for item in data.get("profiles", []):
            item = dict(item)
            if "is_new_user" not in item and item.get("created_at"):
                created_at = parse_datetime(item["created_at"])
                item["is_new_user"] = now - created_at < timedelta(days=new_user_window_days)
            store.add_profile(Profile.from_dict(item))
        for item in data.get("preferences", []):
            store.set_preferences(
                Preferences.from_dict(item, default_max_distance_km=store.default_max_distance_km)
            )
        for blocker, blocked in data.get("blocks", []):
            store.block(blocker, blocked)
        return store

    @classmethod
    def from_json(cls, path: Path, **kwargs) -> "InMemoryProfileStore":
        """Load a store from a JSON fixture file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(data, **kwargs)
