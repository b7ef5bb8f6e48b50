"""Runtime settings and domain constants.

Environment variables are read once at import time. ``main.py`` loads the
repo-root ``.env`` before anything imports this module.
"""

import os
from datetime import timedelta
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent.parent.parent

DATABASE_URL = os.environ.get("DATABASE_URL")
DATA_DIR = Path(os.environ.get("DATA_DIR") or _REPO_ROOT / "data")
MEDIA_PUBLIC_URL = os.environ.get("MEDIA_PUBLIC_URL", "http://localhost:8000/media").rstrip("/")
ADMIN_USER_IDS = {u.strip() for u in os.environ.get("ADMIN_USER_IDS", "").split(",") if u.strip()}
CORS_ALLOW_ORIGINS = os.environ.get("CORS_ALLOW_ORIGINS", "http://localhost:8080").split(",")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def _positive_int(name: str, default: int) -> int:
    value = int(os.environ.get(name, str(default)))
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value


# Change feed: events buffered per subscriber before it is asked to resync
FEED_BUFFER_SIZE = _positive_int("FEED_BUFFER_SIZE", 256)

GEOLOCATION_TIMEOUT_S = float(os.environ.get("GEOLOCATION_TIMEOUT_S", "10"))

# Postgres pool, used only when DATABASE_URL is set
DB_POOL_MIN_SIZE = _positive_int("DB_POOL_MIN_SIZE", 2)
DB_POOL_MAX_SIZE = _positive_int("DB_POOL_MAX_SIZE", 10)

# Media uploads
ALLOWED_MEDIA_TYPES = {"image/png", "image/jpeg", "image/jpg", "video/mp4"}
MAX_MEDIA_SIZE = 10 * 1024 * 1024  # 10 MB per file
MEDIA_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "video/mp4": "mp4",
}

# Reports
DEFAULT_STATUS = "Pending"
REPORT_STATUSES = ("Pending", "Under Review", "Verified", "Resolved")
HAZARD_TYPES = [
    "Oil Spill",
    "Plastic Pollution",
    "Chemical Contamination",
    "Toxic Algae Bloom",
    "Marine Life Distress",
    "Coral Bleaching",
    "Water Quality Issue",
    "Coastal Erosion",
    "Illegal Dumping",
    "Other",
]

# Dashboard
TIME_WINDOWS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "3m": timedelta(days=90),
}
DEFAULT_WINDOW = "24h"
HOTSPOT_LIMIT = 4
UNKNOWN_LOCATION = "Unknown Location"
