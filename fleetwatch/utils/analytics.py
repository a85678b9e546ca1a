"""Pure calculations shared by the analytics service"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
import math
from typing import Dict, Iterable, List, Optional, Union

from fleetwatch.config import ANALYTICS_DEFAULTS
from fleetwatch.utils.timeutils import hours_between

NEVER = "never"

_TWO_PLACES = Decimal("0.01")


def round2(value: float) -> float:
    """Round to 2 decimal places, halves away from zero (2.675 -> 2.68, -2.675 -> -2.68)"""
    if value is None or not math.isfinite(value):
        return value
    return float(Decimal(repr(float(value))).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def odometer_distance(min_odometer: Optional[float], max_odometer: Optional[float]) -> float:
    """Distance covered inside a window, floored at 0 to absorb rollback/noise"""
    return max(0.0, float(max_odometer or 0) - float(min_odometer or 0))


def vehicle_distance(vin: str, min_odometer: Optional[float], max_odometer: Optional[float],
                     time_window: float) -> Dict:
    start = float(min_odometer or 0)
    end = float(max_odometer or 0)
    return {
        "vehicle_vin": vin,
        "start_odometer": start,
        "end_odometer": end,
        "distance_traveled": odometer_distance(start, end),
        "time_window": time_window,
    }


def total_distance(distances: Iterable[float]) -> float:
    return round2(sum(distances))


def average(values: List[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def vehicle_activity(vin: str, last_telemetry_time: Optional[datetime], time_window: float,
                     now: datetime) -> Dict:
    """Activity of one vehicle; a vehicle that never reported is inactive forever"""
    hours_inactive = hours_between(last_telemetry_time, now) if last_telemetry_time else math.inf
    return {
        "vehicle_vin": vin,
        "is_active": hours_inactive < time_window,
        "last_telemetry_time": last_telemetry_time,
        "hours_inactive": display_hours(hours_inactive),
    }


def display_hours(hours: float) -> Union[float, str]:
    if math.isinf(hours):
        return NEVER
    return round2(hours)


def fuel_status(vin: str, fuel_level: float, last_updated: datetime,
                low_threshold: float = ANALYTICS_DEFAULTS["LOW_FUEL_THRESHOLD"],
                critical_threshold: float = ANALYTICS_DEFAULTS["CRITICAL_FUEL_THRESHOLD"]) -> Dict:
    fuel_level = float(fuel_level)
    return {
        "vehicle_vin": vin,
        "current_fuel_level": fuel_level,
        "last_updated": last_updated,
        "is_low_fuel": fuel_level <= low_threshold,
        "is_critical_fuel": fuel_level <= critical_threshold,
    }


def response_status(response_time_ms: float) -> str:
    if response_time_ms < 500:
        return "healthy"
    if response_time_ms < 2000:
        return "degraded"
    return "unhealthy"
