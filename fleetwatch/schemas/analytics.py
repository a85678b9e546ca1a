from pydantic import BaseModel
from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from fleetwatch.config import ANALYTICS_DEFAULTS
from fleetwatch.schemas.common import CamelModel

Hours = Union[int, float]


# Sanitized query parameters, validated once at the HTTP boundary

class AnalyticsQuery(BaseModel):
    fleet_id: Optional[str] = None
    time_window: Hours = ANALYTICS_DEFAULTS["TIME_WINDOW"]
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class ActivityQuery(AnalyticsQuery):
    inactive_threshold: Hours = ANALYTICS_DEFAULTS["INACTIVE_THRESHOLD"]


class FuelQuery(AnalyticsQuery):
    low_threshold: float = ANALYTICS_DEFAULTS["LOW_FUEL_THRESHOLD"]
    critical_threshold: float = ANALYTICS_DEFAULTS["CRITICAL_FUEL_THRESHOLD"]


class AlertSummaryQuery(AnalyticsQuery):
    resolved: Optional[bool] = None
    alert_types: Optional[List[str]] = None
    severities: Optional[List[str]] = None


# Derived results

class AlertSummary(CamelModel):
    by_type: Dict[str, int]
    by_severity: Dict[str, int]
    total: int
    time_window: Hours
    last_updated: datetime


class FleetAnalytics(CamelModel):
    active_vehicles: int
    inactive_vehicles: int
    total_vehicles: int
    average_fuel_level: float
    total_distance_last24h: float
    alert_summary: AlertSummary
    last_updated: datetime


class ActivityStatus(CamelModel):
    active: int
    inactive: int
    inactive_threshold: Hours


class FuelAnalytics(CamelModel):
    average_fuel_level: float
    low_fuel_vehicles: int
    critical_fuel_vehicles: int
    fleet_id: Optional[str] = None
    last_updated: datetime


class DistanceAnalytics(CamelModel):
    total_distance: float
    average_distance_per_vehicle: float
    time_window: Hours
    vehicle_count: int
    fleet_id: Optional[str] = None
    last_updated: datetime


class VehicleActivity(CamelModel):
    vehicle_vin: str
    is_active: bool
    last_telemetry_time: Optional[datetime] = None
    # "never" for vehicles that have not reported any telemetry
    hours_inactive: Union[float, Literal["never"]]


class VehicleDistance(CamelModel):
    vehicle_vin: str
    start_odometer: float
    end_odometer: float
    distance_traveled: float
    time_window: Hours


class VehicleFuelStatus(CamelModel):
    vehicle_vin: str
    current_fuel_level: float
    last_updated: datetime
    is_low_fuel: bool
    is_critical_fuel: bool


class AnalyticsHealth(CamelModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    cache_size: int
    last_update: datetime
    response_time: Optional[float] = None


class CacheStats(CamelModel):
    size: int
    keys: List[str]
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None


class CacheRefreshRequest(CamelModel):
    fleet_id: Optional[str] = None
