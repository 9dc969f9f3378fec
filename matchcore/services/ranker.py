"""Ranker - Deterministic ordering of scored candidates.

Order: adjusted score desc, raw score desc, most recent activity first,
then candidate id ascending. Every tie is resolved.

After sorting, candidates served in the requester's recent lists are
moved into the bottom third (never dropped), then the list is cut to the
requested page size.
"""

from __future__ import annotations

import logging
from typing import Collection

import config
from matchcore.errors import ValidationError
from matchcore.models import CandidateScore

logger = logging.getLogger(__name__)


def sort_key(score: CandidateScore) -> tuple:
    activity = score.last_active_at.timestamp() if score.last_active_at else float("-inf")
    return (-score.score, -score.raw_score, -activity, score.candidate_id)


class Ranker:
    """Sorts, rotates and pages candidate scores."""

    def __init__(
        self,
        default_page_size: int = config.DEFAULT_PAGE_SIZE,
        max_page_size: int = config.MAX_PAGE_SIZE,
    ):
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def resolve_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self.default_page_size
        if page_size < 1:
            raise ValidationError(f"page_size must be at least 1, got {page_size}")
        return min(page_size, self.max_page_size)

    def resolve_offset(self, offset: int | None) -> int:
        if offset is None:
            return 0
        if offset < 0:
            raise ValidationError(f"offset must not be negative, got {offset}")
        return offset

    def order(self, scores: list[CandidateScore]) -> list[CandidateScore]:
        """Total order with no unresolved ties."""
        return sorted(scores, key=sort_key)

    def rotate(self, ranked: list[CandidateScore], recently_shown: Collection[str]) -> list[CandidateScore]:
        """Demote recently served candidates into the bottom third."""
        if not recently_shown:
            return list(ranked)
        fresh = [s for s in ranked if s.candidate_id not in recently_shown]
        recent = [s for s in ranked if s.candidate_id in recently_shown]
        if not recent:
            return list(ranked)
        top_slots = len(ranked) - len(ranked) // 3
        tail = sorted(fresh[top_slots:] + recent, key=sort_key)
        return fresh[:top_slots] + tail

    def arrange(self, scores: list[CandidateScore], recently_shown: Collection[str] = ()) -> list[CandidateScore]:
        """Order and rotate the full list, numbering positions from 1."""
        rotated = self.rotate(self.order(scores), recently_shown)
        return [score.with_position(i) for i, score in enumerate(rotated, start=1)]

    def page(
        self,
        arranged: list[CandidateScore],
        page_size: int | None = None,
        offset: int | None = 0,
    ) -> list[CandidateScore]:
        """Slice of an arranged list. Asking past the end returns what is left."""
        start = self.resolve_offset(offset)
        return arranged[start:start + self.resolve_page_size(page_size)]

    def rank(
        self,
        scores: list[CandidateScore],
        *,
        recently_shown: Collection[str] = (),
        page_size: int | None = None,
    ) -> list[CandidateScore]:
        """Order, rotate and truncate candidates."""
        size = self.resolve_page_size(page_size)
        page = self.page(self.arrange(scores, recently_shown), size)
        logger.debug("[rank] ranked=%d served=%d recent=%d", len(scores), len(page), len(recently_shown))
        return page
