import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://postgres:postgres@db:5432/matchcore")

SEARCH_DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "20"))
SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "100"))
DEFAULT_AGE_FROM = int(os.getenv("DEFAULT_AGE_FROM", "0"))
DEFAULT_AGE_TO = int(os.getenv("DEFAULT_AGE_TO", "120"))

COMPARE_LIMIT = int(os.getenv("COMPARE_LIMIT", "5"))
COMPARE_MAX_ATTEMPTS = int(os.getenv("COMPARE_MAX_ATTEMPTS", "3"))

MIN_MATCH_SCORE = float(os.getenv("MIN_MATCH_SCORE", "70"))
ASSEMBLER_MAX_WORKERS = int(os.getenv("ASSEMBLER_MAX_WORKERS", "8"))

# Ordered: criteria are evaluated and their reasons emitted in this order.
SCORE_WEIGHTS: dict[str, float] = {
    "age": 15.0,
    "community": 10.0,
    "location": 15.0,
    "marital_status": 15.0,
    "education": 15.0,
    "alcohol": 10.0,
    "profession": 10.0,
    "diet": 10.0,
}

if os.getenv("SCORE_WEIGHTS_JSON"):
    try:
        _override: dict[str, Any] = json.loads(os.getenv("SCORE_WEIGHTS_JSON", "{}"))
        SCORE_WEIGHTS.update({k: float(v) for k, v in _override.items() if k in SCORE_WEIGHTS})
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.warning("Ignoring malformed SCORE_WEIGHTS_JSON; keeping default weight table")

# Partial-credit fractions and the per-year penalty outside the age range.
COUNTRY_MATCH_FRACTION = 0.8
EDUCATION_UNLISTED_FRACTION = 0.7
AGE_DISTANCE_PENALTY = 0.1

NEW_PROFILE_WINDOWS_DAYS: dict[str, int] = {
    "last1week": 7,
    "last3week": 21,
    "last1month": 30,
}

RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
RL_COMPARE_WRITE_LIMIT = int(os.getenv("RL_COMPARE_WRITE_LIMIT", "30"))
RL_SEARCH_LIMIT = int(os.getenv("RL_SEARCH_LIMIT", "120"))
