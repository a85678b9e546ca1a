from typing import Any, Dict


def telemetry_entity(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(record["_id"]),
        "vehicle_vin": record["vehicle_vin"],
        "latitude": record["latitude"],
        "longitude": record["longitude"],
        "speed": record["speed"],
        "engine_status": record["engine_status"],
        "fuel_battery_level": record["fuel_battery_level"],
        "odometer_reading": record["odometer_reading"],
        "diagnostic_codes": record.get("diagnostic_codes"),
        "timestamp": record["timestamp"],
        "created_at": record.get("created_at"),
    }
