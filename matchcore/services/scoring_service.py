"""Scoring Service - Multi-factor compatibility scores.

This module handles:
- Computing a raw 0-100 compatibility score per candidate
- Exposing the per-factor breakdown behind each score
- Scoring a batch of candidates concurrently under a deadline

Interface Contract:
- score(requester, preferences, candidate, stats, now) -> CandidateScore
- score_batch(requester, preferences, candidate_ids, profiles, stats, now) -> list[CandidateScore]
- score_batch raises ScoringTimeoutError if the deadline passes; partial
  results are discarded

On timeout the queued jobs are cancelled. A job that has already started
cannot be interrupted and keeps its worker until it returns, so at most
``max_workers`` stale jobs outlive a timed-out batch. ``score`` does no I/O
to keep that window short.

Scores are a pure function of their inputs: the same snapshots and the
same ``now`` always give the same numbers.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Mapping

import config
from matchcore.errors import ScoringTimeoutError
from matchcore.models import CandidateScore, PopulationStats, Preferences, Profile, ScoreFactors
from matchcore.services.candidate_filter import distance_between

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50.0
RECENT_ACTIVITY = timedelta(hours=24)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of each compatibility factor."""
    interest: float = 0.35
    age: float = 0.20
    proximity: float = 0.20
    activity: float = 0.15
    reciprocity: float = 0.10

    def validate(self) -> "ScoringWeights":
        total = self.interest + self.age + self.proximity + self.activity + self.reciprocity
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.6f}")
        if min(self.interest, self.age, self.proximity, self.activity, self.reciprocity) < 0:
            raise ValueError("Scoring weights must be non-negative")
        return self

    @classmethod
    def from_config(cls) -> "ScoringWeights":
        return cls(
            interest=config.WEIGHT_INTEREST,
            age=config.WEIGHT_AGE,
            proximity=config.WEIGHT_PROXIMITY,
            activity=config.WEIGHT_ACTIVITY,
            reciprocity=config.WEIGHT_RECIPROCITY,
        ).validate()


def interest_score(a: frozenset[str], b: frozenset[str]) -> float:
    """Jaccard overlap of two tag sets, scaled to 0-100."""
    union = a | b
    if not union:
        return 0.0
    return 100.0 * len(a & b) / len(union)


def age_score(age: int | None, min_age: int, max_age: int) -> float:
    """Full marks at the middle of the preferred range, 0 at its edges."""
    if age is None:
        return NEUTRAL_SCORE
    half_range = (max_age - min_age) / 2
    if half_range <= 0:
        return 100.0 if age == min_age else 0.0
    midpoint = (min_age + max_age) / 2
    return clamp(100.0 * (1 - abs(age - midpoint) / half_range))


def proximity_score(distance_km: float | None, max_distance_km: float) -> float:
    """100 at zero distance, 0 at max distance, neutral when unknown."""
    if distance_km is None:
        return NEUTRAL_SCORE
    if max_distance_km <= 0:
        return 100.0 if distance_km <= 0 else 0.0
    return clamp(100.0 * (1 - distance_km / max_distance_km))


def activity_score(last_active_at: datetime | None, now: datetime, inactivity_window: timedelta) -> float:
    """100 within the last day, decaying linearly to 0 over the inactivity window."""
    if last_active_at is None:
        return 0.0
    idle = now - last_active_at
    if idle <= RECENT_ACTIVITY:
        return 100.0
    if idle >= inactivity_window:
        return 0.0
    decay_span = inactivity_window - RECENT_ACTIVITY
    return clamp(100.0 * (1 - (idle - RECENT_ACTIVITY) / decay_span))


def reciprocity_score(candidate: Profile, stats: PopulationStats) -> float:
    """Bonus when the candidate engages more than the population average."""
    if candidate.engagement_rate > stats.mean_engagement_rate:
        return 100.0
    return NEUTRAL_SCORE


class ScoringService:
    """Computes compatibility scores for candidates."""

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        *,
        inactivity_window_days: int = config.INACTIVITY_WINDOW_DAYS,
        max_workers: int = config.SCORING_MAX_WORKERS,
    ):
        self.weights = (weights or ScoringWeights.from_config()).validate()
        self.inactivity_window = timedelta(days=inactivity_window_days)
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Lazy load the worker pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="scoring")
        return self._executor

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def factors(
        self,
        requester: Profile,
        preferences: Preferences,
        candidate: Profile,
        stats: PopulationStats,
        now: datetime,
    ) -> ScoreFactors:
        """Per-factor breakdown for one candidate."""
        return ScoreFactors(
            interest=interest_score(requester.interests, candidate.interests),
            age=age_score(candidate.age_on(now.date()), preferences.min_age, preferences.max_age),
            proximity=proximity_score(distance_between(requester, candidate), preferences.max_distance_km),
            activity=activity_score(candidate.last_active_at, now, self.inactivity_window),
            reciprocity=reciprocity_score(candidate, stats),
        )

    def score(
        self,
        requester: Profile,
        preferences: Preferences,
        candidate: Profile,
        stats: PopulationStats,
        now: datetime,
    ) -> CandidateScore:
        """Raw compatibility score for one candidate."""
        f = self.factors(requester, preferences, candidate, stats, now)
        w = self.weights
        total = (
            w.interest * f.interest
            + w.age * f.age
            + w.proximity * f.proximity
            + w.activity * f.activity
            + w.reciprocity * f.reciprocity
        )
        return CandidateScore(
            candidate_id=candidate.user_id,
            raw_score=round(clamp(total), 4),
            factors=f,
            last_active_at=candidate.last_active_at,
        )

    def score_batch(
        self,
        requester: Profile,
        preferences: Preferences,
        candidate_ids: Iterable[str],
        profiles: Mapping[str, Profile],
        stats: PopulationStats,
        now: datetime,
        *,
        timeout: float | None = None,
    ) -> list[CandidateScore]:
        """Score candidates concurrently, keeping input order.

        Candidates without a loaded profile are skipped.

        Raises:
            ScoringTimeoutError: If scoring does not finish within ``timeout`` seconds
        """
        futures = []
        for candidate_id in candidate_ids:
            candidate = profiles.get(candidate_id)
            if candidate is None:
                logger.debug("[score] skipping candidate=%s: profile not loaded", candidate_id)
                continue
            futures.append(
                self.executor.submit(self.score, requester, preferences, candidate, stats, now)
            )
        if not futures:
            return []

        done, not_done = wait(futures, timeout=timeout)
        if not_done:
            # Queued jobs are dropped; a job already running finishes on its worker
            running = sum(1 for future in not_done if not future.cancel())
            logger.warning(
                "[score] user=%s timed out after %ss (%d/%d scored, %d still running)",
                requester.user_id, timeout, len(done), len(futures), running,
            )
            raise ScoringTimeoutError(f"Scoring exceeded {timeout}s deadline")

        return [future.result() for future in futures]
