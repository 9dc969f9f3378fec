"""Global configuration values."""

import os
from pathlib import Path

# Data directory (SQLite file lives here unless DATABASE_URL is set)
DATA_DIR = Path(os.environ.get("MATCHCORE_DATA_DIR", "./data"))

DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DATA_DIR / 'matchcore.db'}")

LOG_LEVEL = os.environ.get("MATCHCORE_LOG_LEVEL", "INFO").upper()

# Recommendation cache
CACHE_TTL_SECONDS = int(os.environ.get("MATCHCORE_CACHE_TTL_SECONDS", "300"))
ROTATION_HISTORY = int(os.environ.get("MATCHCORE_ROTATION_HISTORY", "1"))

# Paging
DEFAULT_PAGE_SIZE = int(os.environ.get("MATCHCORE_DEFAULT_PAGE_SIZE", "10"))
MAX_PAGE_SIZE = int(os.environ.get("MATCHCORE_MAX_PAGE_SIZE", "100"))

# Scoring
SCORING_TIMEOUT_SECONDS = float(os.environ.get("MATCHCORE_SCORING_TIMEOUT_SECONDS", "2.0"))
SCORING_MAX_WORKERS = int(os.environ.get("MATCHCORE_SCORING_MAX_WORKERS", "8"))
INACTIVITY_WINDOW_DAYS = int(os.environ.get("MATCHCORE_INACTIVITY_WINDOW_DAYS", "30"))
DEFAULT_MAX_DISTANCE_KM = float(os.environ.get("MATCHCORE_DEFAULT_MAX_DISTANCE_KM", "50"))

# Weights for the five compatibility factors (must sum to 1.0)
WEIGHT_INTEREST = float(os.environ.get("MATCHCORE_WEIGHT_INTEREST", "0.35"))
WEIGHT_AGE = float(os.environ.get("MATCHCORE_WEIGHT_AGE", "0.20"))
WEIGHT_PROXIMITY = float(os.environ.get("MATCHCORE_WEIGHT_PROXIMITY", "0.20"))
WEIGHT_ACTIVITY = float(os.environ.get("MATCHCORE_WEIGHT_ACTIVITY", "0.15"))
WEIGHT_RECIPROCITY = float(os.environ.get("MATCHCORE_WEIGHT_RECIPROCITY", "0.10"))

# Fairness
NEW_USER_WINDOW_DAYS = int(os.environ.get("MATCHCORE_NEW_USER_WINDOW_DAYS", "7"))
NEW_USER_BOOST = float(os.environ.get("MATCHCORE_NEW_USER_BOOST", "20"))
UNDER_LIKED_BOOST = float(os.environ.get("MATCHCORE_UNDER_LIKED_BOOST", "10"))

# JSON fixture with profiles/preferences/blocks served by the HTTP app
PROFILES_PATH = os.environ.get("MATCHCORE_PROFILES_PATH", str(DATA_DIR / "profiles.json"))
