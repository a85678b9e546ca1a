from datetime import datetime
from enum import Enum
from typing import List, Optional

from fleetwatch.schemas.common import CamelModel


class EngineStatus(str, Enum):
    on = "On"
    off = "Off"
    idle = "Idle"


class TelemetryCreate(CamelModel):
    vehicle_vin: str
    latitude: float
    longitude: float
    speed: float
    engine_status: EngineStatus
    fuel_battery_level: float
    odometer_reading: float
    diagnostic_codes: Optional[List[str]] = None
    timestamp: datetime


class TelemetryBatchCreate(CamelModel):
    records: List[TelemetryCreate]


class TelemetryPublic(TelemetryCreate):
    id: str
    created_at: Optional[datetime] = None


class TelemetryHistory(CamelModel):
    vehicle_vin: str
    record_count: int
    data: List[TelemetryPublic]
