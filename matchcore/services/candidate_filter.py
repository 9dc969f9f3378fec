"""Candidate Filter - Narrow the user universe to feasible candidates.

A candidate passes when:
- their gender is one the requester is interested in
- their age is inside the requester's [min_age, max_age]
- they are within max_distance_km (skipped if either side has no location)
- the requester has not swiped on them (any action)
- there is no block between the two users in either direction
- they are active and are not the requester
- they carry none of the requester's dealbreaker tags

Read-only; returns an empty set when nobody qualifies.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Iterable

from matchcore.models import Coordinate, Preferences, Profile

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_between(a: Profile, b: Profile) -> float | None:
    """Distance between two profiles, None when either lacks a location."""
    if a.location is None or b.location is None:
        return None
    return haversine_km(a.location, b.location)


class CandidateFilter:
    """Applies hard eligibility constraints to a candidate universe."""

    def filter(
        self,
        requester: Profile,
        preferences: Preferences,
        universe: Iterable[Profile],
        *,
        swiped: set[str],
        blocked: set[str],
        today: date,
    ) -> set[str]:
        """Return the ids of candidates who satisfy every constraint."""
        accepted = set()
        for candidate in universe:
            if self.is_eligible(requester, preferences, candidate, swiped=swiped, blocked=blocked, today=today):
                accepted.add(candidate.user_id)
        logger.debug("[filter] user=%s accepted=%d", requester.user_id, len(accepted))
        return accepted

    def is_eligible(
        self,
        requester: Profile,
        preferences: Preferences,
        candidate: Profile,
        *,
        swiped: set[str],
        blocked: set[str],
        today: date,
    ) -> bool:
        if candidate.user_id == requester.user_id or not candidate.is_active:
            return False
        if candidate.user_id in swiped or candidate.user_id in blocked:
            return False
        if not preferences.accepts_gender(candidate.gender):
            return False

        age = candidate.age_on(today)
        if age is None or not preferences.min_age <= age <= preferences.max_age:
            return False

        distance = distance_between(requester, candidate)
        if distance is not None and distance > preferences.max_distance_km:
            return False

        if preferences.dealbreakers & candidate.interests:
            return False
        return True
