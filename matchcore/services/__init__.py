"""Service layer - Business logic modules.

Each service module has a clear interface and can be developed/tested independently.
"""

from .candidate_filter import CandidateFilter
from .events import InMemoryMatchEventPublisher, LoggingMatchEventPublisher
from .fairness import FairnessAdjuster
from .interaction_store import InMemoryInteractionStore, SqlInteractionStore
from .match_detector import MatchDetector
from .profile_store import InMemoryProfileStore
from .ranker import Ranker
from .recommendation_cache import RecommendationCache
from .recommendation_service import RecommendationService
from .scoring_service import ScoringService, ScoringWeights
from .swipe_service import SwipeService

__all__ = [
    "CandidateFilter",
    "InMemoryMatchEventPublisher",
    "LoggingMatchEventPublisher",
    "FairnessAdjuster",
    "InMemoryInteractionStore",
    "SqlInteractionStore",
    "MatchDetector",
    "InMemoryProfileStore",
    "Ranker",
    "RecommendationCache",
    "RecommendationService",
    "ScoringService",
    "ScoringWeights",
    "SwipeService",
]
