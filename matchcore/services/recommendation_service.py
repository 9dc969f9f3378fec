"""Recommendation Service - Ranked candidate lists for a user.

This module handles:
- Serving a user's candidate page from the recommendation cache
- On a miss, running filter -> score -> fairness -> rank and caching the result
- Explaining the score of a single candidate
- Invalidating a user's list after a preference change

Interface Contract:
- get_candidates(user_id, page_size=None, offset=0) -> list[CandidateScore]
- score_pair(user_id, candidate_id) -> CandidateScore
- invalidate_preferences(user_id) -> None
- ValidationError for unknown users or bad page sizes
- ScoringTimeoutError (retryable) when filtering and scoring exceed the
  deadline; nothing partial is cached or returned
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable

import config
from matchcore.errors import NotFoundError, ScoringTimeoutError, ValidationError
from matchcore.models import CandidateScore, PopulationStats, Profile
from matchcore.services.candidate_filter import CandidateFilter
from matchcore.services.fairness import FairnessAdjuster
from matchcore.services.interaction_store import InteractionStore
from matchcore.services.profile_store import ProfileStore
from matchcore.services.ranker import Ranker
from matchcore.services.recommendation_cache import RecommendationCache, utc_now
from matchcore.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)


class RecommendationService:
    """Orchestrates candidate generation for a requesting user."""

    def __init__(
        self,
        profiles: ProfileStore,
        store: InteractionStore,
        cache: RecommendationCache,
        *,
        candidate_filter: CandidateFilter | None = None,
        scorer: ScoringService | None = None,
        fairness: FairnessAdjuster | None = None,
        ranker: Ranker | None = None,
        stats_provider: Callable[[], PopulationStats] | None = None,
        timeout_seconds: float = config.SCORING_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.profiles = profiles
        self.store = store
        self.cache = cache
        self.candidate_filter = candidate_filter or CandidateFilter()
        self.scorer = scorer or ScoringService()
        self.fairness = fairness or FairnessAdjuster()
        self.ranker = ranker or Ranker()
        self.stats_provider = stats_provider
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def get_candidates(
        self,
        user_id: str,
        page_size: int | None = None,
        offset: int = 0,
    ) -> list[CandidateScore]:
        """Return a page of the user's ranked candidates.

        Args:
            user_id: The requesting user
            page_size: Number of candidates wanted (default 10, capped at 100)
            offset: Number of ranked candidates to skip

        Returns:
            list[CandidateScore]: Best first, with 1-based positions in the full list

        Raises:
            ValidationError: Unknown user, page_size below 1 or negative offset
            ScoringTimeoutError: Filtering and scoring exceeded the deadline
        """
        size = self.ranker.resolve_page_size(page_size)
        start = self.ranker.resolve_offset(offset)
        requester = self._require_profile(user_id)

        generation = self.cache.generation(user_id)
        entry = self.cache.get(user_id)
        if entry is not None:
            logger.debug("[reco] cache hit user=%s", user_id)
            arranged = entry.candidates
        else:
            logger.debug("[reco] cache miss user=%s", user_id)
            arranged = self._compute(requester)
            if self.cache.put(user_id, arranged, generation=generation) is None:
                logger.info("[reco] discarded stale list user=%s: invalidated during compute", user_id)

        page = self.ranker.page(arranged, size, start)
        self.cache.record_served(user_id, [c.candidate_id for c in page])
        return page

    def score_pair(self, user_id: str, candidate_id: str) -> CandidateScore:
        """Score one candidate for a user with the factor breakdown.

        Hard filters are not applied, so this also explains why a
        filtered-out candidate would have scored low.
        """
        requester = self._require_profile(user_id)
        candidate = self._require_profile(candidate_id)
        preferences = self.profiles.get_preferences(user_id)
        stats = self._population_stats([requester, candidate])
        raw = self.scorer.score(requester, preferences, candidate, stats, self.clock())
        return self.fairness.adjust([raw], {candidate_id: candidate}, stats)[0]

    def invalidate_preferences(self, user_id: str) -> None:
        """Drop the cached list after the user changes their preferences."""
        try:
            self.cache.invalidate(user_id)
        except Exception as e:
            logger.warning("[reco] cache invalidation failed user=%s: %s", user_id, e)

    def _compute(self, requester: Profile) -> list[CandidateScore]:
        deadline = time.monotonic() + self.timeout_seconds
        now = self.clock()
        user_id = requester.user_id
        preferences = self.profiles.get_preferences(user_id)

        universe = self.profiles.batch_get_profiles(self.profiles.all_user_ids())
        candidate_ids = self.candidate_filter.filter(
            requester,
            preferences,
            universe.values(),
            swiped=self.store.list_swiped_targets(user_id),
            blocked=self.profiles.blocked_user_ids(user_id),
            today=now.date(),
        )
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ScoringTimeoutError(f"Candidate filtering exceeded {self.timeout_seconds}s deadline")

        # Sorted ids keep the work order stable; the ranker decides the final order
        ordered_ids = sorted(candidate_ids)
        candidates = self.profiles.batch_get_profiles(ordered_ids)
        stats = self._population_stats(list(universe.values()))
        raw = self.scorer.score_batch(
            requester, preferences, ordered_ids, candidates, stats, now, timeout=remaining,
        )
        adjusted = self.fairness.adjust(raw, candidates, stats)
        arranged = self.ranker.arrange(adjusted, self.cache.served_history(user_id))
        logger.info(
            "[reco] computed user=%s universe=%d eligible=%d scored=%d",
            user_id, len(universe), len(candidate_ids), len(arranged),
        )
        return arranged

    def _population_stats(self, profiles: list[Profile]) -> PopulationStats:
        if self.stats_provider is not None:
            return self.stats_provider()
        return PopulationStats.from_profiles(profiles)

    def _require_profile(self, user_id: str) -> Profile:
        try:
            return self.profiles.get_profile(user_id)
        except NotFoundError as e:
            raise ValidationError(f"Unknown user: {user_id}") from e
