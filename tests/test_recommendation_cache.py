"""RecommendationCache 单元测试。"""

from matchcore.models import CandidateScore
from matchcore.services.recommendation_cache import RecommendationCache

from conftest import FakeClock


def entries(*ids):
    return [CandidateScore(candidate_id=i, raw_score=50.0) for i in ids]


class TestRecommendationCache:
    """测试缓存读写、过期与失效。"""

    def test_miss_then_hit(self, clock):
        """测试未命中后写入再命中。"""
        cache = RecommendationCache(ttl_seconds=300, clock=clock)

        assert cache.get("u") is None
        cache.put("u", entries("a", "b"))
        entry = cache.get("u")

        assert entry.candidate_ids == ["a", "b"]
        assert entry.computed_at == clock.now
        assert entry.ttl_seconds == 300

    def test_entry_expires_after_ttl(self, clock):
        """测试 TTL 过期后视为未命中并被移除。"""
        cache = RecommendationCache(ttl_seconds=300, clock=clock)
        cache.put("u", entries("a"))

        clock.advance(seconds=299)
        assert cache.get("u") is not None
        clock.advance(seconds=1)
        assert cache.get("u") is None
        assert len(cache) == 0

    def test_per_entry_ttl_override(self, clock):
        """测试写入时指定 TTL。"""
        cache = RecommendationCache(ttl_seconds=300, clock=clock)
        cache.put("u", entries("a"), ttl=10)

        clock.advance(seconds=11)

        assert cache.get("u") is None

    def test_invalidate_only_affects_one_user(self, clock):
        """测试失效只删除该用户的条目。"""
        cache = RecommendationCache(clock=clock)
        cache.put("u1", entries("a"))
        cache.put("u2", entries("b"))

        cache.invalidate("u1")
        cache.invalidate("nobody")

        assert cache.get("u1") is None
        assert cache.get("u2").candidate_ids == ["b"]

    def test_served_history_keeps_last_n_lists(self):
        """测试展示历史只保留最近 N 个列表。"""
        cache = RecommendationCache(history_size=2, clock=FakeClock())

        cache.record_served("u", ["a", "b"])
        cache.record_served("u", ["c"])
        cache.record_served("u", ["d"])

        assert cache.served_history("u") == {"c", "d"}
        assert cache.served_history("other") == set()

    def test_history_survives_invalidation(self, clock):
        """测试失效不会清除展示历史。"""
        cache = RecommendationCache(clock=clock)
        cache.put("u", entries("a"))
        cache.record_served("u", ["a"])

        cache.invalidate("u")

        assert cache.served_history("u") == {"a"}

    def test_history_disabled(self, clock):
        """测试 history_size=0 时不记录历史。"""
        cache = RecommendationCache(history_size=0, clock=clock)

        cache.record_served("u", ["a"])

        assert cache.served_history("u") == set()

    def test_clear(self, clock):
        """测试 clear 清空条目和历史。"""
        cache = RecommendationCache(clock=clock)
        cache.put("u", entries("a"))
        cache.record_served("u", ["a"])

        cache.clear()

        assert cache.get("u") is None
        assert cache.served_history("u") == set()

    def test_stale_fill_after_invalidate_is_dropped(self, clock):
        """测试计算开始后发生失效时，旧的计算结果不会写入缓存。"""
        cache = RecommendationCache(clock=clock)
        generation = cache.generation("u")

        cache.invalidate("u")
        stored = cache.put("u", entries("a"), generation=generation)

        assert stored is None
        assert cache.get("u") is None

    def test_fill_with_current_generation_is_stored(self, clock):
        """测试没有发生失效时正常写入。"""
        cache = RecommendationCache(clock=clock)
        cache.invalidate("u")
        generation = cache.generation("u")

        assert cache.put("u", entries("a"), generation=generation) is not None
        assert cache.get("u").candidate_ids == ["a"]
        assert cache.generation("other") == 0
