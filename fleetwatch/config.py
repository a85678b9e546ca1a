"""Runtime configuration for the Fleetwatch backend"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Settings read from the environment (and a local .env file, if any)"""

    def __init__(self):
        self.MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "fleetwatchDB")
        # Deadline applied to every store operation (client-wide timeoutMS)
        self.MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

        self.CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", str(ANALYTICS_DEFAULTS["CACHE_TTL"])))
        self.CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "100"))

        self.RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
        self.CORS_ORIGINS: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
            if origin.strip()
        ]

        self.PORT = int(os.getenv("PORT", "3000"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


ANALYTICS_DEFAULTS = {
    "TIME_WINDOW": 24,  # hours
    "INACTIVE_THRESHOLD": 24,  # hours
    "LOW_FUEL_THRESHOLD": 15,  # percentage
    "CRITICAL_FUEL_THRESHOLD": 5,  # percentage
    "MAX_TIME_WINDOW": 8760,  # hours (1 year)
    "CACHE_TTL": 300,  # seconds
}

SEVERITY_LEVELS = ["Low", "Medium", "High", "Critical"]
