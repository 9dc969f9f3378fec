"""Interaction Store - Persistence of swipes and matches.

This module handles:
- Swipe upserts (one row per actor/target pair, later swipes overwrite)
- Atomic match creation per unordered pair (insert-if-absent)
- Lookups used for exclusion filtering, swipe history and match listing

Interface Contract:
- upsert_swipe(actor_id, target_id, action, swiped_at) -> Swipe
- find_swipe(actor_id, target_id) -> Swipe | None
- insert_match_if_absent(user_low, user_high, matched_at) -> (Match, created)
- list_swiped_targets(user_id) -> set[str]
- list_swipes(actor_id) -> list[Swipe], newest first
- list_likers(user_id) -> list[Swipe], like-class swipes received from
  users not yet matched with ``user_id``, newest first
- find_match(user_a, user_b) / get_match(match_id) -> Match | None
- list_matches(user_id, status, limit=None, offset=0) -> list[Match], newest first
- Read and write failures raise StorageError

The (user_low, user_high) uniqueness is the only synchronisation primitive
for match creation. Two implementations are provided: an in-process one
guarded by a lock and a SQLAlchemy one backed by unique constraints.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Iterator, Protocol

from sqlalchemy import DateTime, String, UniqueConstraint, create_engine, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from matchcore.errors import ConflictError, StorageError
from matchcore.models import Match, MatchStatus, Swipe, SwipeAction

logger = logging.getLogger(__name__)

LIKE_ACTIONS = tuple(action for action in SwipeAction if action.can_match)


class InteractionStore(Protocol):
    """Storage contract the swipe and match services rely on."""

    def upsert_swipe(self, actor_id: str, target_id: str, action: SwipeAction, swiped_at: datetime) -> Swipe: ...

    def find_swipe(self, actor_id: str, target_id: str) -> Swipe | None: ...

    def insert_match_if_absent(self, user_low: str, user_high: str, matched_at: datetime) -> tuple[Match, bool]: ...

    def list_swiped_targets(self, user_id: str) -> set[str]: ...

    def list_swipes(self, actor_id: str) -> list[Swipe]: ...

    def list_likers(self, user_id: str) -> list[Swipe]: ...

    def find_match(self, user_a: str, user_b: str) -> Match | None: ...

    def get_match(self, match_id: str) -> Match | None: ...

    def list_matches(
        self,
        user_id: str,
        status: MatchStatus | None = MatchStatus.ACTIVE,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Match]: ...


def _newest_first(swipes: list[Swipe]) -> list[Swipe]:
    return sorted(swipes, key=lambda s: (s.swiped_at, s.actor_id, s.target_id), reverse=True)


class InMemoryInteractionStore:
    """Thread-safe in-process interaction store."""

    def __init__(self):
        self._lock = Lock()
        self._swipes: dict[tuple[str, str], Swipe] = {}
        self._matches_by_pair: dict[tuple[str, str], Match] = {}
        self._matches_by_id: dict[str, Match] = {}

    def upsert_swipe(self, actor_id: str, target_id: str, action: SwipeAction, swiped_at: datetime) -> Swipe:
        swipe = Swipe(actor_id=actor_id, target_id=target_id, action=action, swiped_at=swiped_at)
        with self._lock:
            self._swipes[(actor_id, target_id)] = swipe
        return swipe

    def find_swipe(self, actor_id: str, target_id: str) -> Swipe | None:
        with self._lock:
            return self._swipes.get((actor_id, target_id))

    def insert_match_if_absent(self, user_low: str, user_high: str, matched_at: datetime) -> tuple[Match, bool]:
        pair = Match.canonical_pair(user_low, user_high)
        with self._lock:
            existing = self._matches_by_pair.get(pair)
            if existing is not None:
                return existing, False
            match = Match(match_id=uuid.uuid4().hex, user_low=pair[0], user_high=pair[1], matched_at=matched_at)
            self._matches_by_pair[pair] = match
            self._matches_by_id[match.match_id] = match
            return match, True

    def list_swiped_targets(self, user_id: str) -> set[str]:
        with self._lock:
            return {target for actor, target in self._swipes if actor == user_id}

    def list_swipes(self, actor_id: str) -> list[Swipe]:
        with self._lock:
            swipes = [s for (actor, _), s in self._swipes.items() if actor == actor_id]
        return _newest_first(swipes)

    def list_likers(self, user_id: str) -> list[Swipe]:
        with self._lock:
            likes = [
                s for (_, target), s in self._swipes.items()
                if target == user_id
                and s.action.can_match
                and Match.canonical_pair(s.actor_id, user_id) not in self._matches_by_pair
            ]
        return _newest_first(likes)

    def find_match(self, user_a: str, user_b: str) -> Match | None:
        with self._lock:
            return self._matches_by_pair.get(Match.canonical_pair(user_a, user_b))

    def get_match(self, match_id: str) -> Match | None:
        with self._lock:
            return self._matches_by_id.get(match_id)

    def list_matches(
        self,
        user_id: str,
        status: MatchStatus | None = MatchStatus.ACTIVE,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Match]:
        with self._lock:
            matches = [
                m for m in self._matches_by_id.values()
                if m.involves(user_id) and (status is None or m.status == status)
            ]
        matches.sort(key=lambda m: (m.matched_at, m.match_id), reverse=True)
        end = None if limit is None else offset + limit
        return matches[offset:end]

    def count_matches(self) -> int:
        with self._lock:
            return len(self._matches_by_id)


# ============================================================================
# SQL-backed store
# ============================================================================

class Base(DeclarativeBase):
    pass


class SwipeRow(Base):
    __tablename__ = "swipes"
    __table_args__ = (
        UniqueConstraint("actor_id", "target_id", name="uq_swipe_pair"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    swiped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_model(self) -> Swipe:
        return Swipe(
            actor_id=self.actor_id,
            target_id=self.target_id,
            action=SwipeAction(self.action),
            swiped_at=_as_utc(self.swiped_at),
        )


class MatchRow(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user_low", "user_high", name="uq_match_pair"),
    )

    match_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_low: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_high: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    matched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MatchStatus.ACTIVE.value)

    def to_model(self) -> Match:
        return Match(
            match_id=self.match_id,
            user_low=self.user_low,
            user_high=self.user_high,
            matched_at=_as_utc(self.matched_at),
            status=MatchStatus(self.status),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlInteractionStore:
    """Interaction store on top of a SQL database via SQLAlchemy."""

    def __init__(self, database_url: str, *, create_tables: bool = True):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(self.engine)

    @contextmanager
    def _reading(self, what: str) -> Iterator[Session]:
        """Session for a read, with database errors raised as StorageError."""
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {what}: {e}") from e

    def upsert_swipe(self, actor_id: str, target_id: str, action: SwipeAction, swiped_at: datetime) -> Swipe:
        try:
            return self._upsert_swipe(actor_id, target_id, action, swiped_at)
        except IntegrityError:
            # A concurrent first swipe for the same pair won the insert; update it instead
            logger.debug("[store] swipe insert conflict actor=%s target=%s, retrying as update", actor_id, target_id)
            try:
                return self._upsert_swipe(actor_id, target_id, action, swiped_at)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to record swipe: {e}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to record swipe: {e}") from e

    def _upsert_swipe(self, actor_id: str, target_id: str, action: SwipeAction, swiped_at: datetime) -> Swipe:
        with self._session_factory() as session:
            row = session.scalars(
                select(SwipeRow).where(SwipeRow.actor_id == actor_id, SwipeRow.target_id == target_id)
            ).first()
            if row is None:
                row = SwipeRow(actor_id=actor_id, target_id=target_id, action=action.value, swiped_at=swiped_at)
                session.add(row)
            else:
                row.action = action.value
                row.swiped_at = swiped_at
            session.commit()
            return row.to_model()

    def find_swipe(self, actor_id: str, target_id: str) -> Swipe | None:
        with self._reading("swipe") as session:
            row = session.scalars(
                select(SwipeRow).where(SwipeRow.actor_id == actor_id, SwipeRow.target_id == target_id)
            ).first()
            return row.to_model() if row else None

    def insert_match_if_absent(self, user_low: str, user_high: str, matched_at: datetime) -> tuple[Match, bool]:
        low, high = Match.canonical_pair(user_low, user_high)
        try:
            return self._insert_match(low, high, matched_at), True
        except ConflictError:
            logger.info("[store] match already exists for pair=%s,%s", low, high)

        existing = self.find_match(low, high)
        if existing is None:
            raise StorageError(f"Match insert conflicted but no match found for {low},{high}")
        return existing, False

    def _insert_match(self, low: str, high: str, matched_at: datetime) -> Match:
        row = MatchRow(
            match_id=uuid.uuid4().hex,
            user_low=low,
            user_high=high,
            matched_at=matched_at,
            status=MatchStatus.ACTIVE.value,
        )
        try:
            with self._session_factory() as session:
                session.add(row)
                session.commit()
                return row.to_model()
        except IntegrityError as e:
            raise ConflictError(f"Match already exists for {low},{high}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create match: {e}") from e

    def list_swiped_targets(self, user_id: str) -> set[str]:
        with self._reading("swiped targets") as session:
            return set(session.scalars(select(SwipeRow.target_id).where(SwipeRow.actor_id == user_id)))

    def list_swipes(self, actor_id: str) -> list[Swipe]:
        query = (
            select(SwipeRow)
            .where(SwipeRow.actor_id == actor_id)
            .order_by(SwipeRow.swiped_at.desc(), SwipeRow.target_id.desc())
        )
        with self._reading("swipes") as session:
            return [row.to_model() for row in session.scalars(query)]

    def list_likers(self, user_id: str) -> list[Swipe]:
        matched = (
            select(MatchRow.match_id)
            .where(
                or_(
                    (MatchRow.user_low == SwipeRow.actor_id) & (MatchRow.user_high == user_id),
                    (MatchRow.user_high == SwipeRow.actor_id) & (MatchRow.user_low == user_id),
                )
            )
            .exists()
        )
        query = (
            select(SwipeRow)
            .where(
                SwipeRow.target_id == user_id,
                SwipeRow.action.in_([a.value for a in LIKE_ACTIONS]),
                ~matched,
            )
            .order_by(SwipeRow.swiped_at.desc(), SwipeRow.actor_id.desc())
        )
        with self._reading("likers") as session:
            return [row.to_model() for row in session.scalars(query)]

    def find_match(self, user_a: str, user_b: str) -> Match | None:
        low, high = Match.canonical_pair(user_a, user_b)
        with self._reading("match") as session:
            row = session.scalars(
                select(MatchRow).where(MatchRow.user_low == low, MatchRow.user_high == high)
            ).first()
            return row.to_model() if row else None

    def get_match(self, match_id: str) -> Match | None:
        with self._reading("match") as session:
            row = session.get(MatchRow, match_id)
            return row.to_model() if row else None

    def list_matches(
        self,
        user_id: str,
        status: MatchStatus | None = MatchStatus.ACTIVE,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Match]:
        query = select(MatchRow).where(or_(MatchRow.user_low == user_id, MatchRow.user_high == user_id))
        if status is not None:
            query = query.where(MatchRow.status == status.value)
        query = query.order_by(MatchRow.matched_at.desc(), MatchRow.match_id.desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self._reading("matches") as session:
            return [row.to_model() for row in session.scalars(query)]

    def count_matches(self) -> int:
        with self._reading("match count") as session:
            return session.scalar(select(func.count()).select_from(MatchRow))
