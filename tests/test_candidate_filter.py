"""CandidateFilter 单元测试。"""

from dataclasses import replace

import pytest

from matchcore.models import Coordinate, Gender, Preferences
from matchcore.services.candidate_filter import CandidateFilter, distance_between, haversine_km

from conftest import NOW, make_profile


TODAY = NOW.date()


def run_filter(requester, prefs, universe, *, swiped=(), blocked=()):
    return CandidateFilter().filter(
        requester, prefs, universe, swiped=set(swiped), blocked=set(blocked), today=TODAY,
    )


class TestHaversine:
    """测试大圆距离计算。"""

    def test_same_point_is_zero(self):
        """测试同一点距离为 0。"""
        point = Coordinate(10.0, 20.0)
        assert haversine_km(point, point) == 0.0

    def test_one_degree_of_latitude(self):
        """测试一个纬度约 111.19 公里。"""
        assert haversine_km(Coordinate(0, 0), Coordinate(1, 0)) == pytest.approx(111.195, abs=0.01)

    def test_distance_between_without_location(self):
        """测试缺少坐标时距离未知。"""
        a = make_profile("a", km=None)
        b = make_profile("b", km=3)
        assert distance_between(a, b) is None


class TestCandidateFilter:
    """测试候选人过滤规则。"""

    def test_applies_gender_age_and_distance(self, requester, requester_prefs, profile_store):
        """测试性别、年龄、距离过滤。"""
        universe = profile_store.batch_get_profiles(profile_store.all_user_ids()).values()

        result = run_filter(requester, requester_prefs, universe)

        # erin 太老，frank 性别不符，requester 是自己
        assert result == {"alice", "bella", "carla", "dora"}

    def test_excludes_swiped_and_blocked(self, requester, requester_prefs, profile_store):
        """测试排除已 swipe 和已拉黑用户。"""
        universe = profile_store.batch_get_profiles(profile_store.all_user_ids()).values()

        result = run_filter(requester, requester_prefs, universe, swiped={"alice"}, blocked={"bella"})

        assert result == {"carla", "dora"}

    def test_excludes_too_far(self, requester, requester_prefs):
        """测试超出最大距离的候选人被排除。"""
        near = make_profile("near", km=49.9)
        far = make_profile("far", km=50.5)

        assert run_filter(requester, requester_prefs, [near, far]) == {"near"}

    def test_missing_location_skips_distance_check(self, requester, requester_prefs):
        """测试任一方缺少坐标时不做距离过滤。"""
        no_location = make_profile("nowhere", km=None)
        requester_without_location = replace(requester, location=None)
        far = make_profile("far", km=500)

        assert run_filter(requester, requester_prefs, [no_location]) == {"nowhere"}
        assert run_filter(requester_without_location, requester_prefs, [far]) == {"far"}

    def test_age_bounds_are_inclusive(self, requester, requester_prefs):
        """测试年龄边界包含在内。"""
        universe = [make_profile(f"age{a}", age=a) for a in (24, 25, 35, 36)]

        assert run_filter(requester, requester_prefs, universe) == {"age25", "age35"}

    def test_excludes_inactive_and_missing_birth_date(self, requester, requester_prefs):
        """测试排除已停用账号和缺少生日的用户。"""
        inactive = make_profile("inactive", is_active=False)
        no_birth_date = replace(make_profile("ageless"), birth_date=None)

        assert run_filter(requester, requester_prefs, [inactive, no_birth_date]) == set()

    def test_dealbreakers_exclude_candidates(self, requester, requester_prefs):
        """测试 dealbreaker 标签排除候选人。"""
        prefs = replace(requester_prefs, dealbreakers=frozenset({"smoking"}))
        smoker = make_profile("smoker", interests={"smoking", "jazz"})
        other = make_profile("other", interests={"jazz"})

        assert run_filter(requester, prefs, [smoker, other]) == {"other"}

    def test_empty_interested_in_accepts_everyone(self, requester):
        """测试未设置性别偏好时接受所有性别。"""
        prefs = Preferences(user_id="requester", min_age=18, max_age=99, max_distance_km=100)
        universe = [make_profile("f"), make_profile("m", gender=Gender.MALE), make_profile("o", gender=Gender.OTHER)]

        assert run_filter(requester, prefs, universe) == {"f", "m", "o"}

    def test_no_candidates_returns_empty_set(self, requester, requester_prefs):
        """测试没有候选人时返回空集合而不是报错。"""
        assert run_filter(requester, requester_prefs, []) == set()
