"""Recommendation Cache - Short-lived per-user candidate lists.

This module handles:
- Memoizing a user's ranked candidate list for a TTL
- Invalidating a user's list when they swipe or change preferences
- Remembering the last N lists served to a user for rotation

Interface Contract:
- get(user_id) -> RecommendationCacheEntry | None (expired entries are misses)
- generation(user_id) -> int, bumped by every invalidate
- put(user_id, candidates, ttl=None, generation=None) -> RecommendationCacheEntry | None
- invalidate(user_id) -> None
- served_history(user_id) -> set[str]; record_served(user_id, candidate_ids)

The lock only guards the dictionaries. Filling the cache is never
serialized, so two concurrent misses for one user both recompute. A fill
that started before an invalidation passes the generation it read and is
dropped, so a list computed before a swipe never outlives that swipe.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Iterable

import config
from matchcore.models import CandidateScore, RecommendationCacheEntry


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationCache:
    """In-process TTL cache keyed by user id."""

    def __init__(
        self,
        ttl_seconds: int = config.CACHE_TTL_SECONDS,
        *,
        history_size: int = config.ROTATION_HISTORY,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ttl_seconds = ttl_seconds
        self.history_size = history_size
        self.clock = clock
        self._lock = Lock()
        self._entries: dict[str, RecommendationCacheEntry] = {}
        self._history: dict[str, deque[list[str]]] = {}
        self._generations: dict[str, int] = {}

    def generation(self, user_id: str) -> int:
        with self._lock:
            return self._generations.get(user_id, 0)

    def get(self, user_id: str) -> RecommendationCacheEntry | None:
        now = self.clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[user_id]
                return None
            return entry

    def put(
        self,
        user_id: str,
        candidates: list[CandidateScore],
        ttl: int | None = None,
        generation: int | None = None,
    ) -> RecommendationCacheEntry | None:
        """Store a list. Returns None when ``generation`` is stale."""
        entry = RecommendationCacheEntry(
            user_id=user_id,
            candidates=list(candidates),
            computed_at=self.clock(),
            ttl_seconds=self.ttl_seconds if ttl is None else ttl,
        )
        with self._lock:
            if generation is not None and generation != self._generations.get(user_id, 0):
                return None
            self._entries[user_id] = entry
        return entry

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._entries.pop(user_id, None)
            self._generations[user_id] = self._generations.get(user_id, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._history.clear()

    def served_history(self, user_id: str) -> set[str]:
        """Ids served to the user in their last ``history_size`` lists."""
        with self._lock:
            lists = self._history.get(user_id, ())
            return {candidate_id for served in lists for candidate_id in served}

    def record_served(self, user_id: str, candidate_ids: Iterable[str]) -> None:
        if self.history_size <= 0:
            return
        with self._lock:
            history = self._history.setdefault(user_id, deque(maxlen=self.history_size))
            history.append(list(candidate_ids))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
