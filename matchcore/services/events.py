"""Match event publishing.

Delivery is best-effort: the match row is the source of truth, so a
failed publish is logged by the caller and never undoes a match.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol

from matchcore.models import MatchCreatedEvent

logger = logging.getLogger(__name__)


class MatchEventPublisher(Protocol):
    def publish(self, event: MatchCreatedEvent) -> None: ...


class LoggingMatchEventPublisher:
    """Default publisher: writes the event to the log."""

    def publish(self, event: MatchCreatedEvent) -> None:
        logger.info(
            "[event] match_created match_id=%s users=%s,%s at=%s",
            event.match_id, event.user_low, event.user_high, event.matched_at.isoformat(),
        )


class InMemoryMatchEventPublisher:
    """Collects events in a list."""

    def __init__(self):
        self._lock = Lock()
        self.events: list[MatchCreatedEvent] = []

    def publish(self, event: MatchCreatedEvent) -> None:
        with self._lock:
            self.events.append(event)
