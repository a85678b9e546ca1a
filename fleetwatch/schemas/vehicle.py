from datetime import datetime
from enum import Enum
from typing import Optional

from fleetwatch.schemas.common import CamelModel


class RegistrationStatus(str, Enum):
    active = "Active"
    maintenance = "Maintenance"
    decommissioned = "Decommissioned"


class OwnerOperator(CamelModel):
    name: str
    contact: str
    department: Optional[str] = None


class VehicleBase(CamelModel):
    vin: str
    manufacturer: str
    model: str
    fleet_id: str
    owner_operator: OwnerOperator
    registration_status: RegistrationStatus


class VehicleCreate(VehicleBase):
    """Schema for registering a new vehicle."""
    pass


class VehicleUpdate(CamelModel):
    """Partial update; the VIN itself cannot change."""
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    fleet_id: Optional[str] = None
    owner_operator: Optional[OwnerOperator] = None
    registration_status: Optional[RegistrationStatus] = None


class VehiclePublic(VehicleBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
