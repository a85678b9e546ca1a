from typing import Any, Dict


def vehicle_entity(vehicle: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(vehicle["_id"]),
        "vin": vehicle["vin"],  # unique
        "manufacturer": vehicle["manufacturer"],
        "model": vehicle["model"],
        "fleet_id": vehicle["fleet_id"],
        "owner_operator": vehicle.get("owner_operator", {}),
        "registration_status": vehicle["registration_status"],
        "created_at": vehicle.get("created_at"),
        "updated_at": vehicle.get("updated_at"),
    }
