from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from fleetwatch.dependencies.rate_limit import rate_limit
from fleetwatch.dependencies.services import get_alert_service
from fleetwatch.exceptions import ValidationError
from fleetwatch.schemas.alert import AlertCount, AlertCreate, AlertPublic
from fleetwatch.services.alert import AlertService
from fleetwatch.utils.validators import parse_bool, parse_time_param

router = APIRouter(prefix="/alerts", tags=["Alerts"], dependencies=[Depends(rate_limit("general"))])


@router.post("", response_model=AlertPublic, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(rate_limit("create"))])
def create_alert(alert: AlertCreate, service: AlertService = Depends(get_alert_service)):
    return service.create_alert(alert)


# Declared before /{alert_id} so "count" is not taken for an id
@router.get("/count/total", response_model=AlertCount, dependencies=[Depends(rate_limit("read"))])
def alert_count(
    vehicle_vin: Optional[str] = Query(None, alias="vehicleVin"),
    alert_type: Optional[str] = Query(None, alias="alertType"),
    severity: Optional[str] = None,
    resolved: Optional[str] = None,
    start_time: Optional[str] = Query(None, alias="startTime"),
    end_time: Optional[str] = Query(None, alias="endTime"),
    service: AlertService = Depends(get_alert_service),
):
    resolved_flag = None
    if resolved is not None:
        resolved_flag = parse_bool(resolved)
        if resolved_flag is None:
            raise ValidationError("Invalid alert count query", [
                {"field": "resolved", "message": "Resolved must be a boolean value", "value": resolved}
            ])

    count = service.get_alert_count(
        vehicle_vin=vehicle_vin,
        alert_type=alert_type,
        severity=severity,
        resolved=resolved_flag,
        start_time=parse_time_param(start_time, "startTime"),
        end_time=parse_time_param(end_time, "endTime"),
    )
    return AlertCount(count=count)


@router.get("/{alert_id}", response_model=AlertPublic, dependencies=[Depends(rate_limit("read"))])
def get_alert(alert_id: str, service: AlertService = Depends(get_alert_service)):
    return service.get_alert_by_id(alert_id)


@router.patch("/{alert_id}/resolve", response_model=AlertPublic, dependencies=[Depends(rate_limit("update"))])
def resolve_alert(alert_id: str, service: AlertService = Depends(get_alert_service)):
    return service.resolve_alert(alert_id)
