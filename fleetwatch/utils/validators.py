"""Query and payload validation utilities

Validators never fail fast: each returns the full list of field-level errors
({"field", "message", "value"}) so callers see every problem at once.
"""
from datetime import datetime
import math
from typing import Any, Dict, List, Mapping, Optional

from fleetwatch.config import ANALYTICS_DEFAULTS, SEVERITY_LEVELS
from fleetwatch.exceptions import ValidationError
from fleetwatch.schemas.analytics import ActivityQuery, AlertSummaryQuery, AnalyticsQuery, FuelQuery
from fleetwatch.utils.timeutils import parse_iso_datetime

MAX_TIME_WINDOW = ANALYTICS_DEFAULTS["MAX_TIME_WINDOW"]


def _error(field: str, message: str, value: Any) -> Dict[str, Any]:
    return {"field": field, "message": message, "value": value}


def parse_number(value: Any) -> Optional[float]:
    """Parse an int, float or numeric string; None for anything else (including NaN/inf)"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _hours(value: float):
    return int(value) if float(value).is_integer() else value


def parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]
    # "High,Critical" and repeated parameters are both accepted
    expanded = []
    for item in items:
        if isinstance(item, str) and "," in item:
            expanded.extend(item.split(","))
        else:
            expanded.append(item)
    return expanded


def _check_hours(params: Mapping[str, Any], field: str, label: str, errors: List[Dict[str, Any]]):
    if params.get(field) is None:
        return
    hours = parse_number(params[field])
    if hours is None or hours <= 0 or hours > MAX_TIME_WINDOW:
        errors.append(_error(
            field,
            f"{label} must be a positive number of hours (max {MAX_TIME_WINDOW})",
            params[field],
        ))


def _check_timestamp(params: Mapping[str, Any], field: str, label: str, errors: List[Dict[str, Any]]):
    if params.get(field) is None:
        return None
    try:
        return parse_iso_datetime(str(params[field]))
    except ValueError:
        errors.append(_error(field, f"{label} must be a valid ISO date string", params[field]))
        return None


def validate_analytics_query(params: Mapping[str, Any]) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []

    if params.get("fleetId") is not None:
        fleet_id = params["fleetId"]
        if not isinstance(fleet_id, str) or not fleet_id.strip():
            errors.append(_error("fleetId", "Fleet ID must be a non-empty string", fleet_id))

    _check_hours(params, "timeWindow", "Time window", errors)

    start = _check_timestamp(params, "startTime", "Start time", errors)
    end = _check_timestamp(params, "endTime", "End time", errors)
    if start is not None and end is not None and start >= end:
        errors.append(_error(
            "timeRange",
            "Start time must be before end time",
            {"startTime": params["startTime"], "endTime": params["endTime"]},
        ))

    return errors


def validate_activity_query(params: Mapping[str, Any]) -> List[Dict[str, Any]]:
    errors = validate_analytics_query(params)
    _check_hours(params, "inactiveThreshold", "Inactive threshold", errors)
    return errors


def validate_fuel_query(params: Mapping[str, Any]) -> List[Dict[str, Any]]:
    errors = validate_analytics_query(params)
    for field, label in (("lowThreshold", "Low fuel threshold"), ("criticalThreshold", "Critical fuel threshold")):
        if params.get(field) is None:
            continue
        threshold = parse_number(params[field])
        if threshold is None or threshold < 0 or threshold > 100:
            errors.append(_error(field, f"{label} must be a percentage between 0 and 100", params[field]))
    return errors


def validate_alert_summary_query(params: Mapping[str, Any]) -> List[Dict[str, Any]]:
    errors = validate_analytics_query(params)

    if params.get("resolved") is not None and parse_bool(params["resolved"]) is None:
        errors.append(_error("resolved", "Resolved must be a boolean value", params["resolved"]))

    if params.get("alertTypes") is not None:
        invalid_types = [t for t in _as_list(params["alertTypes"]) if not isinstance(t, str) or not t.strip()]
        if invalid_types:
            errors.append(_error("alertTypes", "All alert types must be non-empty strings", invalid_types))

    if params.get("severities") is not None:
        invalid_severities = [s for s in _as_list(params["severities"]) if s not in SEVERITY_LEVELS]
        if invalid_severities:
            errors.append(_error(
                "severities",
                f"Severities must be one of: {', '.join(SEVERITY_LEVELS)}",
                invalid_severities,
            ))

    return errors


def sanitize_analytics_params(params: Mapping[str, Any]) -> AnalyticsQuery:
    return AnalyticsQuery(**_base_fields(params))


def sanitize_activity_params(params: Mapping[str, Any]) -> ActivityQuery:
    fields = _base_fields(params)
    threshold = parse_number(params.get("inactiveThreshold"))
    if threshold is not None and threshold > 0:
        fields["inactive_threshold"] = _hours(min(threshold, MAX_TIME_WINDOW))
    return ActivityQuery(**fields)


def sanitize_fuel_params(params: Mapping[str, Any]) -> FuelQuery:
    fields = _base_fields(params)
    low = parse_number(params.get("lowThreshold"))
    critical = parse_number(params.get("criticalThreshold"))
    if low is not None:
        fields["low_threshold"] = low
    if critical is not None:
        fields["critical_threshold"] = critical
    return FuelQuery(**fields)


def sanitize_alert_summary_params(params: Mapping[str, Any]) -> AlertSummaryQuery:
    fields = _base_fields(params)
    if params.get("resolved") is not None:
        fields["resolved"] = parse_bool(params["resolved"])
    if params.get("alertTypes") is not None:
        fields["alert_types"] = [
            t.strip() for t in _as_list(params["alertTypes"]) if isinstance(t, str) and t.strip()
        ]
    if params.get("severities") is not None:
        fields["severities"] = [s for s in _as_list(params["severities"]) if s in SEVERITY_LEVELS]
    return AlertSummaryQuery(**fields)


def _base_fields(params: Mapping[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    fleet_id = params.get("fleetId")
    if isinstance(fleet_id, str) and fleet_id.strip():
        fields["fleet_id"] = fleet_id.strip()

    time_window = parse_number(params.get("timeWindow"))
    if time_window is not None and time_window > 0:
        fields["time_window"] = _hours(min(time_window, MAX_TIME_WINDOW))

    for field, target in (("startTime", "start_time"), ("endTime", "end_time")):
        if params.get(field) is not None:
            try:
                fields[target] = parse_iso_datetime(str(params[field]))
            except ValueError:
                pass

    return fields


def validate_telemetry(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Range checks for an incoming telemetry reading"""
    errors: List[Dict[str, Any]] = []

    vin = payload.get("vehicle_vin")
    if not isinstance(vin, str) or not vin.strip():
        errors.append(_error("vehicleVin", "vehicle VIN is required", vin))

    latitude = payload.get("latitude")
    if latitude is None or latitude < -90 or latitude > 90:
        errors.append(_error("latitude", "latitude must be between -90 and 90 degrees", latitude))

    longitude = payload.get("longitude")
    if longitude is None or longitude < -180 or longitude > 180:
        errors.append(_error("longitude", "longitude must be between -180 and 180 degrees", longitude))

    speed = payload.get("speed")
    if speed is None or speed < 0:
        errors.append(_error("speed", "speed must be a non-negative number", speed))
    elif speed > 300:
        errors.append(_error("speed", "speed value seems unrealistic", speed))

    fuel = payload.get("fuel_battery_level")
    if fuel is None or fuel < 0 or fuel > 100:
        errors.append(_error("fuelBatteryLevel", "fuel/battery level must be between 0 and 100", fuel))

    odometer = payload.get("odometer_reading")
    if odometer is None or odometer < 0:
        errors.append(_error("odometerReading", "odometer reading must be a non-negative number", odometer))

    return errors


def parse_time_param(value: Optional[str], field: str) -> Optional[datetime]:
    """Parse an optional ISO query parameter, raising a 400 on malformed input"""
    if value is None:
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"invalid {field} format", [
            _error(field, f"{field} must be a valid ISO date string", value)
        ])
