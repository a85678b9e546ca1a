from bson import ObjectId
from pymongo.errors import PyMongoError
from datetime import datetime
from typing import Optional
import logging

from fleetwatch.config import SEVERITY_LEVELS
from fleetwatch.exceptions import NotFoundError, UpstreamUnavailable, ValidationError
from fleetwatch.models.alert import alert_entity
from fleetwatch.repositories.alert import AlertRepository
from fleetwatch.repositories.vehicle import VehicleRepository
from fleetwatch.schemas.alert import AlertCreate, AlertPublic

logger = logging.getLogger(__name__)


def _object_id(alert_id: str) -> ObjectId:
    if not ObjectId.is_valid(alert_id):
        raise ValidationError("Invalid alert ID", [{"field": "id", "message": "malformed alert id", "value": alert_id}])
    return ObjectId(alert_id)


class AlertService:
    def __init__(self, repository: AlertRepository, vehicles: VehicleRepository):
        self.repository = repository
        self.vehicles = vehicles

    def create_alert(self, alert: AlertCreate) -> AlertPublic:
        payload = alert.model_dump(mode="json")
        errors = []
        for field, label in (("alert_type", "alertType"), ("message", "message")):
            payload[field] = payload[field].strip()
            if not payload[field]:
                errors.append({"field": label, "message": f"{label} must be a non-empty string", "value": payload[field]})
        if errors:
            raise ValidationError("Invalid alert data", errors)

        try:
            if not self.vehicles.find_by_vin(payload["vehicle_vin"]):
                raise NotFoundError("vehicle not found")
            doc = self.repository.create(payload)
        except PyMongoError as e:
            logger.error(f"❌ Failed to create alert for {payload['vehicle_vin']}: {e}")
            raise UpstreamUnavailable("Failed to create alert") from e

        logger.info(f"🚨 {payload['severity']} alert '{payload['alert_type']}' raised for {payload['vehicle_vin']}")
        return AlertPublic(**alert_entity(doc))

    def get_alert_by_id(self, alert_id: str) -> AlertPublic:
        oid = _object_id(alert_id)
        try:
            doc = self.repository.find_by_id(oid)
        except PyMongoError as e:
            logger.error(f"❌ Failed to fetch alert {alert_id}: {e}")
            raise UpstreamUnavailable("Failed to retrieve alert") from e
        if not doc:
            raise NotFoundError("alert not found")
        return AlertPublic(**alert_entity(doc))

    def resolve_alert(self, alert_id: str) -> AlertPublic:
        oid = _object_id(alert_id)
        try:
            doc = self.repository.resolve(oid)
        except PyMongoError as e:
            logger.error(f"❌ Failed to resolve alert {alert_id}: {e}")
            raise UpstreamUnavailable("Failed to resolve alert") from e
        if not doc:
            raise NotFoundError("alert not found")
        return AlertPublic(**alert_entity(doc))

    def get_alert_count(self, vehicle_vin: Optional[str] = None, alert_type: Optional[str] = None,
                        severity: Optional[str] = None, resolved: Optional[bool] = None,
                        start_time: Optional[datetime] = None, end_time: Optional[datetime] = None) -> int:
        errors = []
        if severity is not None and severity not in SEVERITY_LEVELS:
            errors.append({
                "field": "severity",
                "message": f"Severity must be one of: {', '.join(SEVERITY_LEVELS)}",
                "value": severity,
            })
        if start_time and end_time and start_time >= end_time:
            errors.append({
                "field": "timeRange",
                "message": "Start time must be before end time",
                "value": {"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
            })
        if errors:
            raise ValidationError("Invalid alert count query", errors)

        try:
            return self.repository.count_by_filters(vehicle_vin, alert_type, severity, resolved, start_time, end_time)
        except PyMongoError as e:
            logger.error(f"❌ Failed to count alerts: {e}")
            raise UpstreamUnavailable("Failed to retrieve alert count") from e
