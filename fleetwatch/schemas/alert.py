from datetime import datetime
from enum import Enum
from typing import Optional

from fleetwatch.schemas.common import CamelModel


class Severity(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    critical = "Critical"


class AlertCreate(CamelModel):
    vehicle_vin: str
    telemetry_id: Optional[str] = None
    alert_type: str
    severity: Severity
    message: str
    resolved: bool = False


class AlertPublic(AlertCreate):
    id: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class AlertCount(CamelModel):
    count: int
