from pymongo import ReturnDocument
from pymongo.database import Database
from typing import Any, Dict, List, Optional

from fleetwatch.database import VEHICLES
from fleetwatch.utils.timeutils import utcnow


class VehicleRepository:
    def __init__(self, db: Database):
        self.collection = db[VEHICLES]

    def create(self, vehicle: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        doc = {**vehicle, "created_at": now, "updated_at": now}
        result = self.collection.insert_one(doc)
        return self.collection.find_one({"_id": result.inserted_id})

    def find_by_vin(self, vin: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"vin": vin})

    def find_all(self, filters: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        query = {}
        for field in ("manufacturer", "fleet_id", "registration_status"):
            if filters and filters.get(field):
                query[field] = filters[field]
        return list(self.collection.find(query).sort("vin", 1))

    def update(self, vin: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_update(
            {"vin": vin},
            {"$set": {**updates, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def delete(self, vin: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_delete({"vin": vin})
