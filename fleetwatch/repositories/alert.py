from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from datetime import datetime
from typing import Any, Dict, Optional

from fleetwatch.database import ALERTS
from fleetwatch.utils.timeutils import utcnow


class AlertRepository:
    def __init__(self, db: Database):
        self.collection = db[ALERTS]

    def create(self, alert: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**alert, "created_at": utcnow(), "resolved_at": None}
        if alert.get("resolved"):
            doc["resolved_at"] = doc["created_at"]
        result = self.collection.insert_one(doc)
        return self.collection.find_one({"_id": result.inserted_id})

    def find_by_id(self, alert_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"_id": alert_id})

    def resolve(self, alert_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_update(
            {"_id": alert_id},
            {"$set": {"resolved": True, "resolved_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def count_by_filters(self, vehicle_vin: Optional[str] = None, alert_type: Optional[str] = None,
                         severity: Optional[str] = None, resolved: Optional[bool] = None,
                         start_time: Optional[datetime] = None, end_time: Optional[datetime] = None) -> int:
        query: Dict[str, Any] = {}
        if vehicle_vin:
            query["vehicle_vin"] = vehicle_vin
        if alert_type:
            query["alert_type"] = alert_type
        if severity:
            query["severity"] = severity
        if resolved is not None:
            query["resolved"] = resolved

        created_range = {}
        if start_time:
            created_range["$gte"] = start_time
        if end_time:
            created_range["$lte"] = end_time
        if created_range:
            query["created_at"] = created_range

        return self.collection.count_documents(query)
