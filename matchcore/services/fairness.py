"""Fairness Adjuster - Counteract popularity skew in raw scores.

One additive boost tier per candidate, applied to the raw score and then
clamped to [0, 100]:
- new users (onboarding window active) get ``new_user_boost``
- otherwise, candidates liked less often than the population average
  relative to their exposure get ``under_liked_boost``
- everyone else gets nothing

The boosts never stack. Population averages are passed in, so the
adjuster is a pure function and applying it twice gives the same result.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping

import config
from matchcore.models import CandidateScore, FairnessBoost, PopulationStats, Profile
from matchcore.services.scoring_service import clamp


class FairnessAdjuster:
    """Applies single-tier fairness boosts."""

    def __init__(
        self,
        new_user_boost: float = config.NEW_USER_BOOST,
        under_liked_boost: float = config.UNDER_LIKED_BOOST,
    ):
        self.new_user_boost = new_user_boost
        self.under_liked_boost = under_liked_boost

    def boost_for(self, candidate: Profile, stats: PopulationStats) -> tuple[FairnessBoost, float]:
        """Pick the boost tier for a candidate."""
        if candidate.is_new_user:
            return FairnessBoost.NEW_USER, self.new_user_boost
        ratio = candidate.like_ratio
        if ratio is not None and ratio < stats.mean_like_ratio:
            return FairnessBoost.UNDER_LIKED, self.under_liked_boost
        return FairnessBoost.NONE, 0.0

    def adjust(
        self,
        scores: list[CandidateScore],
        candidates: Mapping[str, Profile],
        stats: PopulationStats,
    ) -> list[CandidateScore]:
        """Return new scores with ``adjusted_score`` and ``boost`` filled in."""
        adjusted = []
        for score in scores:
            candidate = candidates.get(score.candidate_id)
            if candidate is None:
                tier, amount = FairnessBoost.NONE, 0.0
            else:
                tier, amount = self.boost_for(candidate, stats)
            adjusted.append(
                replace(score, adjusted_score=round(clamp(score.raw_score + amount), 4), boost=tier)
            )
        return adjusted
