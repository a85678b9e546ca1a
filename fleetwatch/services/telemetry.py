from pymongo.errors import PyMongoError
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from fleetwatch.exceptions import NotFoundError, UpstreamUnavailable, ValidationError
from fleetwatch.models.telemetry import telemetry_entity
from fleetwatch.repositories.telemetry import TelemetryRepository
from fleetwatch.repositories.vehicle import VehicleRepository
from fleetwatch.schemas.telemetry import TelemetryCreate, TelemetryHistory, TelemetryPublic
from fleetwatch.utils.timeutils import to_naive_utc
from fleetwatch.utils.validators import validate_telemetry

logger = logging.getLogger(__name__)


def _to_document(record: TelemetryCreate) -> Dict[str, Any]:
    doc = record.model_dump()
    doc["vehicle_vin"] = doc["vehicle_vin"].strip()
    doc["engine_status"] = record.engine_status.value
    doc["timestamp"] = to_naive_utc(record.timestamp)
    return doc


class TelemetryService:
    def __init__(self, repository: TelemetryRepository, vehicles: VehicleRepository):
        self.repository = repository
        self.vehicles = vehicles

    def _require_vehicle(self, vin: str):
        if not self.vehicles.find_by_vin(vin):
            raise NotFoundError("vehicle not found", [{"field": "vehicleVin", "message": "unknown VIN", "value": vin}])

    def create_telemetry(self, record: TelemetryCreate) -> TelemetryPublic:
        doc = _to_document(record)
        errors = validate_telemetry(doc)
        if errors:
            raise ValidationError("Invalid telemetry data", errors)

        try:
            self._require_vehicle(doc["vehicle_vin"])
            saved = self.repository.create(doc)
        except PyMongoError as e:
            logger.error(f"❌ Failed to store telemetry for {doc['vehicle_vin']}: {e}")
            raise UpstreamUnavailable("Failed to create telemetry record") from e

        return TelemetryPublic(**telemetry_entity(saved))

    def create_telemetry_batch(self, records: List[TelemetryCreate]) -> List[TelemetryPublic]:
        """All-or-nothing: one invalid record or unknown VIN rejects the whole batch"""
        if not records:
            raise ValidationError("Invalid telemetry data", [
                {"field": "records", "message": "at least one record is required", "value": []}
            ])

        docs = [_to_document(record) for record in records]
        errors = []
        for index, doc in enumerate(docs):
            for error in validate_telemetry(doc):
                errors.append({**error, "field": f"records[{index}].{error['field']}"})
        if errors:
            raise ValidationError("Invalid telemetry data", errors)

        try:
            for vin in sorted({doc["vehicle_vin"] for doc in docs}):
                self._require_vehicle(vin)
            saved = self.repository.create_batch(docs)
        except PyMongoError as e:
            logger.error(f"❌ Failed to store telemetry batch of {len(docs)}: {e}")
            raise UpstreamUnavailable("Failed to create telemetry records") from e

        logger.info(f"📡 Stored {len(saved)} telemetry records")
        return [TelemetryPublic(**telemetry_entity(doc)) for doc in saved]

    def get_telemetry_history(self, vin: str, start_time: Optional[datetime] = None,
                              end_time: Optional[datetime] = None) -> TelemetryHistory:
        if start_time and end_time and start_time >= end_time:
            raise ValidationError("Invalid time range", [{
                "field": "timeRange",
                "message": "Start time must be before end time",
                "value": {"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
            }])

        try:
            self._require_vehicle(vin)
            docs = self.repository.find_by_vin_with_time_range(vin, start_time, end_time)
        except PyMongoError as e:
            logger.error(f"❌ Failed to read telemetry history for {vin}: {e}")
            raise UpstreamUnavailable("Failed to retrieve telemetry history") from e

        data = [TelemetryPublic(**telemetry_entity(doc)) for doc in docs]
        return TelemetryHistory(vehicle_vin=vin, record_count=len(data), data=data)

    def get_latest_telemetry(self, vin: str) -> TelemetryPublic:
        try:
            doc = self.repository.find_latest_by_vin(vin)
        except PyMongoError as e:
            logger.error(f"❌ Failed to read latest telemetry for {vin}: {e}")
            raise UpstreamUnavailable("Failed to retrieve latest telemetry") from e
        if not doc:
            raise NotFoundError("no telemetry data found for vehicle")
        return TelemetryPublic(**telemetry_entity(doc))
