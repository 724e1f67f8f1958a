# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite
- Fast password hashing
- Throttling off
- Settlement policy pinned to the defaults so env files cannot change test outcomes
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

SETTLEMENT = {
    "ALLOW_OVERSELL": True,
    "LOCK_ROWS": True,
}

MIN_STOCK = {
    "LOOKBACK_DAYS": 90,
    "LEAD_TIME_DAYS": 7,
    "SAFETY_STOCK_MULTIPLIER": 1.5,
    "MIN_THRESHOLD": 10,
    "SEASONAL_ADJUSTMENT": True,
    "SERVICE_LEVEL_Z": 1.65,
    "TREND_THRESHOLD_PERCENT": 15.0,
    "RECENT_WINDOW_DAYS": 30,
}
