"""测试配置和共享 Fixtures。"""

from datetime import date, datetime, timedelta, timezone

import pytest

from matchcore import MatchCore
from matchcore.models import Coordinate, Gender, Preferences, Profile
from matchcore.services import (
    InMemoryInteractionStore,
    InMemoryMatchEventPublisher,
    InMemoryProfileStore,
    RecommendationCache,
)


NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
BASE = Coordinate(latitude=52.52, longitude=13.405)
KM_PER_DEGREE_LATITUDE = 6371.0 * 3.141592653589793 / 180


# ============================================================================
# Test Utilities
# ============================================================================

class FakeClock:
    """可控的测试时钟。"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def north_of(origin: Coordinate, km: float) -> Coordinate:
    """返回 origin 正北方向 km 公里处的坐标。"""
    return Coordinate(latitude=origin.latitude + km / KM_PER_DEGREE_LATITUDE, longitude=origin.longitude)


def make_profile(
    user_id: str,
    *,
    age: int = 30,
    gender: Gender = Gender.FEMALE,
    interests=(),
    km: float | None = 1.0,
    active_hours_ago: float | None = 1.0,
    **kwargs,
) -> Profile:
    """按年龄/距离/活跃度快速构造 Profile。"""
    return Profile(
        user_id=user_id,
        birth_date=date(NOW.year - age, 1, 1),
        gender=gender,
        interests=frozenset(interests),
        location=None if km is None else north_of(BASE, km),
        last_active_at=None if active_hours_ago is None else NOW - timedelta(hours=active_hours_ago),
        **kwargs,
    )


# ============================================================================
# Mock Services
# ============================================================================

class FailingCache(RecommendationCache):
    """invalidate 总是失败的缓存，用于验证失效失败不影响 swipe。"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.invalidate_calls = 0

    def invalidate(self, user_id: str) -> None:
        self.invalidate_calls += 1
        raise RuntimeError("cache backend unavailable")


class FailingInteractionStore(InMemoryInteractionStore):
    """upsert_swipe 总是失败的存储。"""

    def upsert_swipe(self, actor_id, target_id, action, swiped_at):
        raise ConnectionError("database is down")


class FailingPublisher:
    """publish 总是失败的事件发布器。"""

    def __init__(self):
        self.call_count = 0

    def publish(self, event) -> None:
        self.call_count += 1
        raise RuntimeError("broker unavailable")


# ============================================================================
# Profile Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def requester() -> Profile:
    """创建示例请求者：30 岁男性，位于 BASE。"""
    return make_profile(
        "requester",
        age=30,
        gender=Gender.MALE,
        interests={"hiking", "jazz", "cooking", "chess"},
        km=0.0,
    )


@pytest.fixture
def requester_prefs() -> Preferences:
    """请求者偏好：25-35 岁女性，50 公里以内。"""
    return Preferences(
        user_id="requester",
        min_age=25,
        max_age=35,
        max_distance_km=50.0,
        interested_in=frozenset({Gender.FEMALE}),
    )


@pytest.fixture
def profile_store(requester, requester_prefs) -> InMemoryProfileStore:
    """包含请求者和若干候选人的 Profile Store。"""
    store = InMemoryProfileStore()
    store.add_profile(requester)
    store.set_preferences(requester_prefs)
    store.add_profile(make_profile("alice", age=30, interests={"hiking", "jazz", "cooking"}, km=5))
    store.add_profile(make_profile("bella", age=34, interests={"hiking"}, km=45))
    store.add_profile(make_profile("carla", age=28, interests={"chess", "cooking"}, km=12))
    store.add_profile(make_profile("dora", age=26, interests={"jazz"}, km=30))
    store.add_profile(make_profile("erin", age=40, interests={"hiking"}, km=3))  # too old
    store.add_profile(make_profile("frank", gender=Gender.MALE, interests={"chess"}, km=2))
    return store


@pytest.fixture
def interaction_store() -> InMemoryInteractionStore:
    return InMemoryInteractionStore()


@pytest.fixture
def publisher() -> InMemoryMatchEventPublisher:
    return InMemoryMatchEventPublisher()


@pytest.fixture
def core(profile_store, interaction_store, publisher, clock) -> MatchCore:
    """使用内存存储和假时钟组装的 MatchCore。"""
    return MatchCore.create(profile_store, interaction_store, publisher=publisher, clock=clock)
