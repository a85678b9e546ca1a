from typing import Any, Dict


def alert_entity(alert: Dict[str, Any]) -> Dict[str, Any]:
    telemetry_id = alert.get("telemetry_id")
    return {
        "id": str(alert["_id"]),
        "vehicle_vin": alert["vehicle_vin"],
        "telemetry_id": str(telemetry_id) if telemetry_id else None,
        "alert_type": alert["alert_type"],
        "severity": alert["severity"],
        "message": alert["message"],
        "resolved": alert.get("resolved", False),
        "created_at": alert.get("created_at"),
        "resolved_at": alert.get("resolved_at"),
    }
