"""Data models - Pure data structures with no business logic."""

from .profile import Coordinate, Gender, PopulationStats, Preferences, Profile, normalize_tags, parse_datetime
from .interaction import Match, MatchCreatedEvent, MatchStatus, Swipe, SwipeAction, SwipeResult
from .recommendation import CandidateScore, FairnessBoost, RecommendationCacheEntry, ScoreFactors

__all__ = [
    "Coordinate",
    "Gender",
    "PopulationStats",
    "Preferences",
    "Profile",
    "normalize_tags",
    "parse_datetime",
    "Match",
    "MatchCreatedEvent",
    "MatchStatus",
    "Swipe",
    "SwipeAction",
    "SwipeResult",
    "CandidateScore",
    "FairnessBoost",
    "RecommendationCacheEntry",
    "ScoreFactors",
]
