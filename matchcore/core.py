"""Wiring for the matching core.

``MatchCore`` builds the services around a profile store and an
interaction store and exposes the two caller-facing operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from matchcore.models import CandidateScore, PopulationStats, SwipeAction, SwipeResult
from matchcore.services.events import LoggingMatchEventPublisher, MatchEventPublisher
from matchcore.services.interaction_store import InMemoryInteractionStore, InteractionStore
from matchcore.services.match_detector import MatchDetector
from matchcore.services.profile_store import ProfileStore
from matchcore.services.recommendation_cache import RecommendationCache, utc_now
from matchcore.services.recommendation_service import RecommendationService
from matchcore.services.swipe_service import SwipeService


@dataclass
class MatchCore:
    """The recommendation and swipe services sharing one cache."""
    recommendations: RecommendationService
    swipes: SwipeService
    cache: RecommendationCache

    @classmethod
    def create(
        cls,
        profiles: ProfileStore,
        store: InteractionStore | None = None,
        *,
        publisher: MatchEventPublisher | None = None,
        cache: RecommendationCache | None = None,
        stats_provider: Callable[[], PopulationStats] | None = None,
        clock: Callable[[], datetime] = utc_now,
        **recommendation_options,
    ) -> "MatchCore":
        store = store or InMemoryInteractionStore()
        cache = cache or RecommendationCache(clock=clock)
        detector = MatchDetector(store, publisher or LoggingMatchEventPublisher())
        recommendations = RecommendationService(
            profiles,
            store,
            cache,
            stats_provider=stats_provider,
            clock=clock,
            **recommendation_options,
        )
        swipes = SwipeService(profiles, store, cache, detector, clock=clock)
        return cls(recommendations=recommendations, swipes=swipes, cache=cache)

    def get_candidates(self, user_id: str, page_size: int | None = None, offset: int = 0) -> list[CandidateScore]:
        return self.recommendations.get_candidates(user_id, page_size, offset)

    def swipe(self, actor_id: str, target_id: str, action: SwipeAction | str) -> SwipeResult:
        return self.swipes.record_swipe(actor_id, target_id, action)
