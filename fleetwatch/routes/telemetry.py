from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from fleetwatch.dependencies.rate_limit import rate_limit
from fleetwatch.dependencies.services import get_telemetry_service
from fleetwatch.schemas.telemetry import TelemetryBatchCreate, TelemetryCreate, TelemetryHistory, TelemetryPublic
from fleetwatch.services.telemetry import TelemetryService
from fleetwatch.utils.validators import parse_time_param

router = APIRouter(prefix="/telemetry", tags=["Telemetry"], dependencies=[Depends(rate_limit("general"))])


@router.post("", response_model=TelemetryPublic, status_code=status.HTTP_201_CREATED)
def create_telemetry(record: TelemetryCreate, service: TelemetryService = Depends(get_telemetry_service)):
    return service.create_telemetry(record)


@router.post("/batch", response_model=List[TelemetryPublic], status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("create"))])
def create_telemetry_batch(batch: TelemetryBatchCreate, service: TelemetryService = Depends(get_telemetry_service)):
    return service.create_telemetry_batch(batch.records)


@router.get("/{vin}/history", response_model=TelemetryHistory)
def telemetry_history(
    vin: str,
    start_time: Optional[str] = Query(None, alias="startTime"),
    end_time: Optional[str] = Query(None, alias="endTime"),
    service: TelemetryService = Depends(get_telemetry_service),
):
    return service.get_telemetry_history(
        vin,
        parse_time_param(start_time, "startTime"),
        parse_time_param(end_time, "endTime"),
    )


@router.get("/{vin}/latest", response_model=TelemetryPublic)
def latest_telemetry(vin: str, service: TelemetryService = Depends(get_telemetry_service)):
    return service.get_latest_telemetry(vin)
