from fastapi import APIRouter, Depends, Query, Response, status
from typing import List, Optional

from fleetwatch.dependencies.rate_limit import rate_limit
from fleetwatch.dependencies.services import get_vehicle_service
from fleetwatch.schemas.vehicle import RegistrationStatus, VehicleCreate, VehiclePublic, VehicleUpdate
from fleetwatch.services.vehicle import VehicleService

router = APIRouter(prefix="/vehicles", tags=["Vehicles"], dependencies=[Depends(rate_limit("general"))])


@router.post("", response_model=VehiclePublic, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("create"))])
def create_vehicle(vehicle: VehicleCreate, service: VehicleService = Depends(get_vehicle_service)):
    return service.create_vehicle(vehicle)


@router.get("", response_model=List[VehiclePublic], dependencies=[Depends(rate_limit("read"))])
def list_vehicles(
    manufacturer: Optional[str] = None,
    fleet_id: Optional[str] = Query(None, alias="fleetId"),
    registration_status: Optional[RegistrationStatus] = Query(None, alias="registrationStatus"),
    service: VehicleService = Depends(get_vehicle_service),
):
    filters = {
        "manufacturer": manufacturer,
        "fleet_id": fleet_id,
        "registration_status": registration_status.value if registration_status else None,
    }
    return service.get_all_vehicles({k: v for k, v in filters.items() if v})


@router.get("/{vin}", response_model=VehiclePublic, dependencies=[Depends(rate_limit("read"))])
def get_vehicle(vin: str, service: VehicleService = Depends(get_vehicle_service)):
    return service.get_vehicle_by_vin(vin)


@router.put("/{vin}", response_model=VehiclePublic, dependencies=[Depends(rate_limit("update"))])
def update_vehicle(vin: str, updates: VehicleUpdate, service: VehicleService = Depends(get_vehicle_service)):
    return service.update_vehicle(vin, updates)


@router.delete("/{vin}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(rate_limit("delete"))])
def delete_vehicle(vin: str, service: VehicleService = Depends(get_vehicle_service)):
    service.delete_vehicle(vin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
