from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from typing import Optional
import logging

from fleetwatch.config import Settings

logger = logging.getLogger(__name__)

VEHICLES = "vehicles"
TELEMETRY = "telemetry"
ALERTS = "alerts"

_client: Optional[MongoClient] = None


def get_client(settings: Optional[Settings] = None) -> MongoClient:
    """Return the process-wide MongoClient, creating it on first use.

    MongoClient connects lazily, so this never blocks on the network.
    """
    global _client
    if _client is None:
        settings = settings or Settings()
        _client = MongoClient(
            settings.MONGO_URI,
            serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
            timeoutMS=settings.MONGO_TIMEOUT_MS,
        )
    return _client


def get_database(settings: Optional[Settings] = None) -> Database:
    settings = settings or Settings()
    return get_client(settings)[settings.MONGO_DB_NAME]


def close_client():
    global _client
    if _client is not None:
        _client.close()
        _client = None


def ping(db: Database) -> bool:
    try:
        db.command("ping")
        return True
    except Exception as e:
        logger.error(f"❌ MongoDB ping failed: {e}")
        return False


def ensure_indexes(db: Database):
    """Create the indexes the repositories and analytics pipelines rely on"""
    vehicles = db[VEHICLES]
    vehicles.create_index([("vin", ASCENDING)], unique=True)
    vehicles.create_index([("fleet_id", ASCENDING)])
    vehicles.create_index([("registration_status", ASCENDING)])

    telemetry = db[TELEMETRY]
    telemetry.create_index([("vehicle_vin", ASCENDING), ("timestamp", DESCENDING)])
    telemetry.create_index([("timestamp", DESCENDING)])

    alerts = db[ALERTS]
    alerts.create_index([("created_at", DESCENDING)])
    alerts.create_index([("alert_type", ASCENDING), ("created_at", DESCENDING)])
    alerts.create_index([("severity", ASCENDING), ("created_at", DESCENDING)])
    alerts.create_index([("resolved", ASCENDING)])
    logger.info("✅ MongoDB indexes ensured")
