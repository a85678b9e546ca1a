from pymongo.database import Database
from datetime import datetime
from typing import Any, Dict, List, Optional

from fleetwatch.database import ALERTS, TELEMETRY, VEHICLES


class AnalyticsRepository:
    """
    Aggregation queries backing the fleet analytics.

    Every method runs its own pipeline against the store; nothing is cached
    here. Fleet scoping resolves the fleet's VINs first and restricts the
    telemetry/alert pipelines to them.
    """

    def __init__(self, db: Database):
        self.vehicles = db[VEHICLES]
        self.telemetry = db[TELEMETRY]
        self.alerts = db[ALERTS]

    def get_fleet_vins(self, fleet_id: Optional[str] = None) -> List[str]:
        query = {"fleet_id": fleet_id} if fleet_id else {}
        return [doc["vin"] for doc in self.vehicles.find(query, {"vin": 1}).sort("vin", 1)]

    def _vin_scope(self, fleet_id: Optional[str]) -> Dict[str, Any]:
        if not fleet_id:
            return {}
        return self._registered_scope(fleet_id)

    def _registered_scope(self, fleet_id: Optional[str]) -> Dict[str, Any]:
        """Readings of registered vehicles only; telemetry outlives a deleted vehicle"""
        return {"vehicle_vin": {"$in": self.get_fleet_vins(fleet_id)}}

    def get_total_vehicle_count(self, fleet_id: Optional[str] = None) -> int:
        return self.vehicles.count_documents({"fleet_id": fleet_id} if fleet_id else {})

    def get_active_vehicle_count(self, cutoff: datetime, fleet_id: Optional[str] = None) -> int:
        """Distinct registered vehicles with at least one reading at or after ``cutoff``"""
        pipeline = [
            {"$match": {"timestamp": {"$gte": cutoff}, **self._registered_scope(fleet_id)}},
            {"$group": {"_id": "$vehicle_vin"}},
        ]
        return len(list(self.telemetry.aggregate(pipeline)))

    def _latest_per_vehicle(self, fleet_id: Optional[str]) -> List[Dict[str, Any]]:
        return [
            {"$match": self._registered_scope(fleet_id)},
            {"$sort": {"vehicle_vin": 1, "timestamp": -1, "_id": -1}},
            {"$group": {
                "_id": "$vehicle_vin",
                "fuel_battery_level": {"$first": "$fuel_battery_level"},
                "timestamp": {"$first": "$timestamp"},
            }},
        ]

    def get_average_fuel_level(self, fleet_id: Optional[str] = None) -> float:
        """Mean of each vehicle's latest fuel/battery reading"""
        pipeline = self._latest_per_vehicle(fleet_id) + [
            {"$group": {"_id": None, "avg_fuel": {"$avg": "$fuel_battery_level"}}},
        ]
        rows = list(self.telemetry.aggregate(pipeline))
        if not rows or rows[0].get("avg_fuel") is None:
            return 0.0
        return float(rows[0]["avg_fuel"])

    def get_latest_readings(self, fleet_id: Optional[str] = None) -> List[Dict[str, Any]]:
        pipeline = self._latest_per_vehicle(fleet_id) + [{"$sort": {"_id": 1}}]
        return [
            {
                "vehicle_vin": row["_id"],
                "fuel_battery_level": row["fuel_battery_level"],
                "timestamp": row["timestamp"],
            }
            for row in self.telemetry.aggregate(pipeline)
        ]

    def get_odometer_ranges(self, cutoff: datetime, fleet_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Min/max odometer per vehicle over readings at or after ``cutoff``"""
        pipeline = [
            {"$match": {"timestamp": {"$gte": cutoff}, **self._vin_scope(fleet_id)}},
            {"$group": {
                "_id": "$vehicle_vin",
                "min_odometer": {"$min": "$odometer_reading"},
                "max_odometer": {"$max": "$odometer_reading"},
            }},
            {"$sort": {"_id": 1}},
        ]
        return [
            {
                "vehicle_vin": row["_id"],
                "min_odometer": row["min_odometer"],
                "max_odometer": row["max_odometer"],
            }
            for row in self.telemetry.aggregate(pipeline)
        ]

    def get_last_telemetry_times(self, fleet_id: Optional[str] = None) -> Dict[str, datetime]:
        stages: List[Dict[str, Any]] = []
        scope = self._vin_scope(fleet_id)
        if scope:
            stages.append({"$match": scope})
        stages.append({"$group": {"_id": "$vehicle_vin", "last_timestamp": {"$max": "$timestamp"}}})
        return {row["_id"]: row["last_timestamp"] for row in self.telemetry.aggregate(stages)}

    def get_alert_counts(self, cutoff: datetime, fleet_id: Optional[str] = None,
                         resolved: Optional[bool] = None, alert_types: Optional[List[str]] = None,
                         severities: Optional[List[str]] = None,
                         end_time: Optional[datetime] = None) -> Dict[str, Any]:
        """Alert counts by type and by severity (independently) plus the total"""
        created_at: Dict[str, Any] = {"$gte": cutoff}
        if end_time:
            created_at["$lte"] = end_time

        match: Dict[str, Any] = {"created_at": created_at, **self._vin_scope(fleet_id)}
        if resolved is not None:
            match["resolved"] = resolved
        if alert_types:
            match["alert_type"] = {"$in": alert_types}
        if severities:
            match["severity"] = {"$in": severities}

        by_type = {
            row["_id"]: int(row["count"])
            for row in self.alerts.aggregate([
                {"$match": match},
                {"$group": {"_id": "$alert_type", "count": {"$sum": 1}}},
            ])
        }
        by_severity = {
            row["_id"]: int(row["count"])
            for row in self.alerts.aggregate([
                {"$match": match},
                {"$group": {"_id": "$severity", "count": {"$sum": 1}}},
            ])
        }
        total = self.alerts.count_documents(match)

        return {"by_type": by_type, "by_severity": by_severity, "total": total}
