from pymongo.database import Database
from datetime import datetime
from typing import Any, Dict, List, Optional

from fleetwatch.database import TELEMETRY
from fleetwatch.utils.timeutils import utcnow

# Newest first; equal timestamps fall back to insertion order (ObjectId)
NEWEST_FIRST = [("timestamp", -1), ("_id", -1)]


class TelemetryRepository:
    def __init__(self, db: Database):
        self.collection = db[TELEMETRY]

    def create(self, record: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**record, "created_at": utcnow()}
        result = self.collection.insert_one(doc)
        return self.collection.find_one({"_id": result.inserted_id})

    def create_batch(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not records:
            return []

        now = utcnow()
        result = self.collection.insert_many([{**record, "created_at": now} for record in records])
        return list(self.collection.find({"_id": {"$in": result.inserted_ids}}).sort("_id", 1))

    def find_by_vin_with_time_range(self, vehicle_vin: str, start_time: Optional[datetime] = None,
                                    end_time: Optional[datetime] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"vehicle_vin": vehicle_vin}
        time_range = {}
        if start_time:
            time_range["$gte"] = start_time
        if end_time:
            time_range["$lte"] = end_time
        if time_range:
            query["timestamp"] = time_range

        return list(self.collection.find(query).sort(NEWEST_FIRST))

    def find_latest_by_vin(self, vehicle_vin: str) -> Optional[Dict[str, Any]]:
        docs = list(self.collection.find({"vehicle_vin": vehicle_vin}).sort(NEWEST_FIRST).limit(1))
        return docs[0] if docs else None
