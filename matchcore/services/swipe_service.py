"""Swipe Service - Record swipe decisions and report matches.

This module handles:
- Validating and recording swipes (upsert per actor/target pair)
- Triggering match detection for like-class swipes
- Invalidating the swiper's cached recommendations
- Looking up a user's matches, swipe history and pending likes

Interface Contract:
- record_swipe(actor_id, target_id, action) -> SwipeResult
- list_matches(user_id, status=ACTIVE, limit=None, offset=0) -> list[Match]
- list_swipes(user_id) -> list[Swipe]; list_likers(user_id) -> list[Swipe]
- get_match(match_id, user_id) -> Match
- ValidationError for bad input, StorageError when the write fails
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from matchcore.errors import NotFoundError, StorageError, ValidationError
from matchcore.models import Match, MatchStatus, Swipe, SwipeAction, SwipeResult
from matchcore.services.interaction_store import InteractionStore
from matchcore.services.match_detector import MatchDetector
from matchcore.services.profile_store import ProfileStore
from matchcore.services.recommendation_cache import RecommendationCache, utc_now

logger = logging.getLogger(__name__)


class SwipeService:
    """Service for swipes and the matches they produce."""

    def __init__(
        self,
        profiles: ProfileStore,
        store: InteractionStore,
        cache: RecommendationCache,
        detector: MatchDetector | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.profiles = profiles
        self.store = store
        self.cache = cache
        self.detector = detector or MatchDetector(store)
        self.clock = clock

    def record_swipe(self, actor_id: str, target_id: str, action: SwipeAction | str) -> SwipeResult:
        """Record a swipe and check for a mutual match.

        Args:
            actor_id: User who swiped
            target_id: User who was swiped on
            action: LIKE, SUPER_LIKE or PASS (enum or name)

        Returns:
            SwipeResult: whether a match exists now, and its id

        Raises:
            ValidationError: Self-swipe, unknown action or unknown user
            StorageError: The swipe could not be written
        """
        action = self._validate(actor_id, target_id, action)
        logger.debug("[swipe] actor=%s target=%s action=%s", actor_id, target_id, action.value)

        try:
            swipe = self.store.upsert_swipe(actor_id, target_id, action, self.clock())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to record swipe: {e}") from e

        match = self.detector.detect(swipe) if action.can_match else None
        self._invalidate(actor_id)

        logger.info(
            "[swipe] recorded actor=%s target=%s action=%s match=%s",
            actor_id, target_id, action.value, match.match_id if match else None,
        )
        return SwipeResult(is_match=match is not None, swipe=swipe, match_id=match.match_id if match else None)

    def list_matches(
        self,
        user_id: str,
        status: MatchStatus | None = MatchStatus.ACTIVE,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Match]:
        """Matches involving a user, newest first.

        Raises:
            ValidationError: Unknown user, limit below 1 or negative offset
        """
        if limit is not None and limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}")
        if offset < 0:
            raise ValidationError(f"offset must not be negative, got {offset}")
        self._require_user(user_id)
        return self.store.list_matches(user_id, status, limit=limit, offset=offset)

    def list_swipes(self, user_id: str) -> list[Swipe]:
        """Swipes the user has made, newest first."""
        self._require_user(user_id)
        return self.store.list_swipes(user_id)

    def list_likers(self, user_id: str) -> list[Swipe]:
        """Likes the user has received from people they are not matched with yet."""
        self._require_user(user_id)
        likes = self.store.list_likers(user_id)
        logger.debug("[swipe] likers user=%s count=%d", user_id, len(likes))
        return likes

    def get_match(self, match_id: str, user_id: str) -> Match:
        """Fetch one match the user is part of.

        Raises:
            NotFoundError: No such match
            ValidationError: The user is not part of the match
        """
        match = self.store.get_match(match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        if not match.involves(user_id):
            raise ValidationError("You are not part of this match")
        return match

    def _validate(self, actor_id: str, target_id: str, action: SwipeAction | str) -> SwipeAction:
        if not actor_id or not target_id:
            raise ValidationError("actor_id and target_id are required")
        if actor_id == target_id:
            raise ValidationError("Cannot swipe on yourself")
        if not isinstance(action, SwipeAction):
            try:
                action = SwipeAction.from_string(action)
            except (ValueError, AttributeError) as e:
                raise ValidationError(str(e)) from e
        self._require_user(actor_id)
        self._require_user(target_id)
        return action

    def _require_user(self, user_id: str) -> None:
        try:
            self.profiles.get_profile(user_id)
        except NotFoundError as e:
            raise ValidationError(f"Unknown user: {user_id}") from e

    def _invalidate(self, user_id: str) -> None:
        try:
            self.cache.invalidate(user_id)
        except Exception as e:
            logger.warning("[swipe] cache invalidation failed user=%s: %s", user_id, e)
