from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import Dict, List, Optional
import logging

from fleetwatch.exceptions import ConflictError, NotFoundError, UpstreamUnavailable, ValidationError
from fleetwatch.models.vehicle import vehicle_entity
from fleetwatch.repositories.vehicle import VehicleRepository
from fleetwatch.schemas.vehicle import VehicleCreate, VehiclePublic, VehicleUpdate

logger = logging.getLogger(__name__)


class VehicleService:
    def __init__(self, repository: VehicleRepository):
        self.repository = repository

    def create_vehicle(self, vehicle: VehicleCreate) -> VehiclePublic:
        payload = vehicle.model_dump(mode="json")
        payload["vin"] = payload["vin"].strip()
        if not payload["vin"]:
            raise ValidationError("Invalid vehicle data", [
                {"field": "vin", "message": "VIN must be a non-empty string", "value": vehicle.vin}
            ])

        try:
            if self.repository.find_by_vin(payload["vin"]):
                raise ConflictError("vehicle with this VIN already exists")
            doc = self.repository.create(payload)
        except DuplicateKeyError:
            raise ConflictError("vehicle with this VIN already exists")
        except PyMongoError as e:
            logger.error(f"❌ Failed to create vehicle {payload['vin']}: {e}")
            raise UpstreamUnavailable("Failed to create vehicle") from e

        logger.info(f"🚗 Registered vehicle {payload['vin']}")
        return VehiclePublic(**vehicle_entity(doc))

    def get_all_vehicles(self, filters: Optional[Dict[str, str]] = None) -> List[VehiclePublic]:
        try:
            docs = self.repository.find_all(filters)
        except PyMongoError as e:
            logger.error(f"❌ Failed to list vehicles: {e}")
            raise UpstreamUnavailable("Failed to retrieve vehicles") from e
        return [VehiclePublic(**vehicle_entity(doc)) for doc in docs]

    def get_vehicle_by_vin(self, vin: str) -> VehiclePublic:
        try:
            doc = self.repository.find_by_vin(vin)
        except PyMongoError as e:
            logger.error(f"❌ Failed to fetch vehicle {vin}: {e}")
            raise UpstreamUnavailable("Failed to retrieve vehicle") from e
        if not doc:
            raise NotFoundError("vehicle not found")
        return VehiclePublic(**vehicle_entity(doc))

    def update_vehicle(self, vin: str, updates: VehicleUpdate) -> VehiclePublic:
        changes = updates.model_dump(mode="json", exclude_none=True)
        if not changes:
            return self.get_vehicle_by_vin(vin)

        try:
            doc = self.repository.update(vin, changes)
        except PyMongoError as e:
            logger.error(f"❌ Failed to update vehicle {vin}: {e}")
            raise UpstreamUnavailable("Failed to update vehicle") from e
        if not doc:
            raise NotFoundError("vehicle not found")
        return VehiclePublic(**vehicle_entity(doc))

    def delete_vehicle(self, vin: str) -> VehiclePublic:
        try:
            doc = self.repository.delete(vin)
        except PyMongoError as e:
            logger.error(f"❌ Failed to delete vehicle {vin}: {e}")
            raise UpstreamUnavailable("Failed to delete vehicle") from e
        if not doc:
            raise NotFoundError("vehicle not found")
        logger.info(f"🗑️ Deleted vehicle {vin}")
        return VehiclePublic(**vehicle_entity(doc))
