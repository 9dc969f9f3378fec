"""SwipeService / MatchDetector 单元测试。

测试覆盖:
- 输入校验
- 幂等的 upsert 与匹配检测
- 并发互相喜欢只产生一条匹配
- 存储失败、缓存失效失败、事件发布失败的处理
"""

import threading

import pytest

from matchcore.errors import NotFoundError, StorageError, ValidationError
from matchcore.models import MatchStatus, SwipeAction
from matchcore.services import InMemoryInteractionStore, MatchDetector, RecommendationCache, SwipeService

from conftest import FailingCache, FailingInteractionStore, FailingPublisher


@pytest.fixture
def cache(clock) -> RecommendationCache:
    return RecommendationCache(clock=clock)


@pytest.fixture
def service(profile_store, interaction_store, cache, publisher, clock) -> SwipeService:
    detector = MatchDetector(interaction_store, publisher)
    return SwipeService(profile_store, interaction_store, cache, detector, clock=clock)


class TestValidation:
    """测试 swipe 输入校验。"""

    def test_self_swipe_rejected(self, service):
        """测试不能 swipe 自己。"""
        with pytest.raises(ValidationError):
            service.record_swipe("alice", "alice", SwipeAction.LIKE)

    def test_invalid_action_rejected(self, service):
        """测试非法动作。"""
        with pytest.raises(ValidationError):
            service.record_swipe("alice", "bella", "maybe")

    def test_unknown_user_rejected(self, service, interaction_store):
        """测试未知用户，且不会写入任何 swipe。"""
        with pytest.raises(ValidationError):
            service.record_swipe("alice", "ghost", SwipeAction.LIKE)
        assert interaction_store.find_swipe("alice", "ghost") is None

    def test_action_accepts_strings(self, service):
        """测试动作可以用字符串传入。"""
        result = service.record_swipe("alice", "bella", "Super_Like")

        assert result.swipe.action is SwipeAction.SUPER_LIKE


class TestRecordSwipe:
    """测试 swipe 记录与匹配。"""

    def test_one_sided_like_is_not_a_match(self, service, publisher):
        """测试单向喜欢不产生匹配。"""
        result = service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert result.is_match is False
        assert result.match_id is None
        assert publisher.events == []

    def test_mutual_like_creates_match_once(self, service, interaction_store, publisher):
        """测试互相喜欢恰好产生一条匹配和一个事件。"""
        service.record_swipe("bella", "alice", SwipeAction.LIKE)

        result = service.record_swipe("alice", "bella", SwipeAction.SUPER_LIKE)

        assert result.is_match is True
        assert interaction_store.count_matches() == 1
        match = interaction_store.find_match("alice", "bella")
        assert result.match_id == match.match_id
        assert (match.user_low, match.user_high) == ("alice", "bella")
        assert [e.match_id for e in publisher.events] == [match.match_id]

    def test_repeat_swipe_is_idempotent(self, service, interaction_store, publisher):
        """测试重复相同的 swipe 得到相同结果，不会重复创建匹配。"""
        service.record_swipe("bella", "alice", SwipeAction.LIKE)

        first = service.record_swipe("alice", "bella", SwipeAction.LIKE)
        second = service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert first.is_match == second.is_match is True
        assert first.match_id == second.match_id
        assert interaction_store.count_matches() == 1
        assert len(publisher.events) == 1

    def test_repeat_one_sided_swipe_is_idempotent(self, service):
        """测试单向 swipe 重复调用结果一致。"""
        first = service.record_swipe("alice", "carla", SwipeAction.PASS)
        second = service.record_swipe("alice", "carla", SwipeAction.PASS)

        assert first.is_match == second.is_match is False

    def test_pass_never_matches(self, service, interaction_store):
        """测试 PASS 不会产生匹配，即使对方喜欢。"""
        service.record_swipe("bella", "alice", SwipeAction.LIKE)

        result = service.record_swipe("alice", "bella", SwipeAction.PASS)

        assert result.is_match is False
        assert interaction_store.count_matches() == 0

    def test_reverse_pass_does_not_match(self, service, interaction_store):
        """测试对方 PASS 时喜欢也不会匹配。"""
        service.record_swipe("bella", "alice", SwipeAction.PASS)

        result = service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert result.is_match is False

    def test_change_of_mind_overwrites(self, service, interaction_store):
        """测试改主意时覆盖之前的 swipe。"""
        service.record_swipe("alice", "bella", SwipeAction.PASS)
        service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert interaction_store.find_swipe("alice", "bella").action is SwipeAction.LIKE
        assert interaction_store.list_swiped_targets("alice") == {"bella"}

    def test_swipe_invalidates_actor_cache(self, service, cache):
        """测试 swipe 成功后清除 swiper 的推荐缓存。"""
        cache.put("alice", [])
        cache.put("bella", [])

        service.record_swipe("alice", "bella", SwipeAction.PASS)

        assert cache.get("alice") is None
        assert cache.get("bella") is not None


class TestFailureHandling:
    """测试失败场景。"""

    def test_storage_failure_surfaces_and_skips_matching(self, profile_store, publisher, clock):
        """测试存储失败时抛出 StorageError，不创建匹配也不清缓存。"""
        store = FailingInteractionStore()
        cache = RecommendationCache(clock=clock)
        cache.put("alice", [])
        service = SwipeService(profile_store, store, cache, MatchDetector(store, publisher), clock=clock)

        with pytest.raises(StorageError):
            service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert store.count_matches() == 0
        assert cache.get("alice") is not None

    def test_cache_failure_does_not_fail_swipe(self, profile_store, interaction_store, clock):
        """测试缓存失效失败不影响 swipe 成功。"""
        cache = FailingCache(clock=clock)
        service = SwipeService(profile_store, interaction_store, cache, clock=clock)

        result = service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert result.swipe.action is SwipeAction.LIKE
        assert cache.invalidate_calls == 1
        assert interaction_store.find_swipe("alice", "bella") is not None

    def test_publisher_failure_does_not_lose_match(self, profile_store, interaction_store, cache, clock):
        """测试事件发布失败时匹配仍然存在。"""
        failing = FailingPublisher()
        service = SwipeService(
            profile_store, interaction_store, cache, MatchDetector(interaction_store, failing), clock=clock,
        )
        service.record_swipe("bella", "alice", SwipeAction.LIKE)

        result = service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert result.is_match is True
        assert failing.call_count == 1
        assert interaction_store.count_matches() == 1


class BarrierInteractionStore(InMemoryInteractionStore):
    """写入 swipe 后等待另一方也写入，制造最坏情况的竞争。"""

    def __init__(self, parties: int):
        super().__init__()
        self.barrier = threading.Barrier(parties)

    def upsert_swipe(self, actor_id, target_id, action, swiped_at):
        swipe = super().upsert_swipe(actor_id, target_id, action, swiped_at)
        self.barrier.wait(timeout=5)
        return swipe


class TestConcurrency:
    """测试并发互相喜欢。"""

    def test_simultaneous_mutual_likes_report_same_match(self, profile_store, cache, publisher, clock):
        """场景：两个线程同时完成互相喜欢，只存在一条匹配，两边都报告同一个 match_id。"""
        store = BarrierInteractionStore(parties=2)
        service = SwipeService(profile_store, store, cache, MatchDetector(store, publisher), clock=clock)
        results = {}

        def swipe(actor, target):
            results[actor] = service.record_swipe(actor, target, SwipeAction.LIKE)

        threads = [
            threading.Thread(target=swipe, args=("alice", "bella")),
            threading.Thread(target=swipe, args=("bella", "alice")),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results["alice"].is_match and results["bella"].is_match
        assert results["alice"].match_id == results["bella"].match_id
        assert store.count_matches() == 1
        assert len(publisher.events) == 1

    def test_many_pairs_under_contention(self, profile_store, interaction_store, cache, clock):
        """测试多对用户并发互相喜欢，每对恰好一条匹配。"""
        service = SwipeService(profile_store, interaction_store, cache, clock=clock)
        pairs = [("alice", "bella"), ("carla", "dora"), ("alice", "dora"), ("bella", "carla")]
        outcomes = []
        lock = threading.Lock()

        def swipe(actor, target):
            result = service.record_swipe(actor, target, SwipeAction.LIKE)
            with lock:
                outcomes.append((frozenset((actor, target)), result))

        threads = []
        for a, b in pairs:
            threads.append(threading.Thread(target=swipe, args=(a, b)))
            threads.append(threading.Thread(target=swipe, args=(b, a)))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert interaction_store.count_matches() == len(pairs)
        for a, b in pairs:
            pair_results = [r for key, r in outcomes if key == frozenset((a, b))]
            match_ids = {r.match_id for r in pair_results if r.is_match}
            assert len(match_ids) == 1
            assert match_ids == {interaction_store.find_match(a, b).match_id}


class TestMatchLookup:
    """测试匹配查询。"""

    def test_list_matches(self, service):
        """测试列出用户的匹配。"""
        service.record_swipe("bella", "alice", SwipeAction.LIKE)
        service.record_swipe("alice", "bella", SwipeAction.LIKE)

        matches = service.list_matches("alice")

        assert len(matches) == 1
        assert matches[0].other_user("alice") == "bella"
        assert matches[0].status is MatchStatus.ACTIVE
        assert service.list_matches("carla") == []

    def test_list_matches_unknown_user(self, service):
        """测试未知用户。"""
        with pytest.raises(ValidationError):
            service.list_matches("ghost")

    def test_get_match_authorization(self, service):
        """测试只有匹配双方可以查看匹配。"""
        service.record_swipe("bella", "alice", SwipeAction.LIKE)
        result = service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert service.get_match(result.match_id, "bella").match_id == result.match_id
        with pytest.raises(ValidationError):
            service.get_match(result.match_id, "carla")
        with pytest.raises(NotFoundError):
            service.get_match("missing", "alice")

    def test_list_matches_paging(self, service):
        """测试匹配列表分页及参数校验。"""
        for other in ["bella", "carla", "dora"]:
            service.record_swipe(other, "alice", SwipeAction.LIKE)
            service.record_swipe("alice", other, SwipeAction.LIKE)

        assert len(service.list_matches("alice", limit=2)) == 2
        assert len(service.list_matches("alice", limit=2, offset=2)) == 1
        with pytest.raises(ValidationError):
            service.list_matches("alice", limit=0)
        with pytest.raises(ValidationError):
            service.list_matches("alice", offset=-1)


class TestSwipeHistory:
    """测试 swipe 历史和“谁喜欢了我”。"""

    def test_list_swipes(self, service, clock):
        """测试列出用户做出的 swipe，最新的在前。"""
        service.record_swipe("alice", "bella", SwipeAction.PASS)
        clock.advance(minutes=1)
        service.record_swipe("alice", "carla", SwipeAction.LIKE)

        assert [s.target_id for s in service.list_swipes("alice")] == ["carla", "bella"]
        with pytest.raises(ValidationError):
            service.list_swipes("ghost")

    def test_likers_drop_out_once_matched(self, service):
        """测试喜欢我的人在互相喜欢形成匹配后不再出现在列表中。"""
        service.record_swipe("bella", "alice", SwipeAction.LIKE)
        service.record_swipe("carla", "alice", SwipeAction.SUPER_LIKE)
        service.record_swipe("dora", "alice", SwipeAction.PASS)

        assert {s.actor_id for s in service.list_likers("alice")} == {"bella", "carla"}

        service.record_swipe("alice", "bella", SwipeAction.LIKE)

        assert [s.actor_id for s in service.list_likers("alice")] == ["carla"]

    def test_likers_unknown_user(self, service):
        """测试未知用户。"""
        with pytest.raises(ValidationError):
            service.list_likers("ghost")
