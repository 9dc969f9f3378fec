"""Match Detector - Turn a mutual like into exactly one match.

Per pair: NoInteraction -> OneSidedLike -> Matched. Called after the
current swipe is durably written. If the reverse swipe is also a like,
the canonical match row is created with a single insert-if-absent call.
Losing that insert to a concurrent detection is success: the existing
match is returned. Safe to call redundantly from both sides.
"""

from __future__ import annotations

import logging
from datetime import datetime

from matchcore.models import Match, MatchCreatedEvent, Swipe
from matchcore.services.events import LoggingMatchEventPublisher, MatchEventPublisher
from matchcore.services.interaction_store import InteractionStore

logger = logging.getLogger(__name__)


class MatchDetector:
    """Detects mutual likes and creates canonical matches."""

    def __init__(self, store: InteractionStore, publisher: MatchEventPublisher | None = None):
        self.store = store
        self.publisher = publisher or LoggingMatchEventPublisher()

    def detect(self, swipe: Swipe, *, now: datetime | None = None) -> Match | None:
        """Return the pair's match if this swipe completes (or completed) a mutual like."""
        if not swipe.action.can_match:
            return None

        reverse = self.store.find_swipe(swipe.target_id, swipe.actor_id)
        if reverse is None or not reverse.action.can_match:
            return None

        low, high = Match.canonical_pair(swipe.actor_id, swipe.target_id)
        match, created = self.store.insert_match_if_absent(low, high, now or swipe.swiped_at)
        if created:
            logger.info("[match] created match_id=%s users=%s,%s", match.match_id, low, high)
            self._publish(match)
        else:
            logger.debug("[match] existing match_id=%s users=%s,%s", match.match_id, low, high)
        return match

    def _publish(self, match: Match) -> None:
        try:
            self.publisher.publish(MatchCreatedEvent.from_match(match))
        except Exception as e:
            logger.warning("[match] event publish failed match_id=%s: %s", match.match_id, e)
