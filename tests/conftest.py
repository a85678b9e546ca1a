"""Shared fixtures: an in-memory MongoDB and a test client wired to it"""
from datetime import timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

from fleetwatch.config import Settings
from fleetwatch.database import ALERTS, TELEMETRY, VEHICLES
from fleetwatch.main import create_app
from fleetwatch.utils.timeutils import utcnow

VIN = "1HGCM82633A004352"


@pytest.fixture
def db():
    return mongomock.MongoClient()["fleetwatch_test"]


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    return Settings()


@pytest.fixture
def client(db, settings):
    """Create test client; entering the context runs the app lifespan"""
    app = create_app(database=db, settings=settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def add_vehicle(db):
    def _add(vin=VIN, fleet_id="F1", manufacturer="Honda", status="Active"):
        now = utcnow()
        db[VEHICLES].insert_one({
            "vin": vin,
            "manufacturer": manufacturer,
            "model": "Accord",
            "fleet_id": fleet_id,
            "owner_operator": {"name": "Dana Reyes", "contact": "dana@example.com"},
            "registration_status": status,
            "created_at": now,
            "updated_at": now,
        })
        return vin
    return _add


@pytest.fixture
def add_reading(db):
    def _add(vin=VIN, hours_ago=1.0, odometer=1000.0, fuel=50.0):
        db[TELEMETRY].insert_one({
            "vehicle_vin": vin,
            "latitude": 40.71,
            "longitude": -74.0,
            "speed": 55.0,
            "engine_status": "On",
            "fuel_battery_level": fuel,
            "odometer_reading": odometer,
            "diagnostic_codes": None,
            "timestamp": utcnow() - timedelta(hours=hours_ago),
            "created_at": utcnow(),
        })
    return _add


@pytest.fixture
def add_alert(db):
    def _add(vin=VIN, alert_type="LowFuel", severity="High", resolved=False, hours_ago=1.0):
        created_at = utcnow() - timedelta(hours=hours_ago)
        db[ALERTS].insert_one({
            "vehicle_vin": vin,
            "telemetry_id": None,
            "alert_type": alert_type,
            "severity": severity,
            "message": f"{alert_type} on {vin}",
            "resolved": resolved,
            "created_at": created_at,
            "resolved_at": created_at if resolved else None,
        })
    return _add
