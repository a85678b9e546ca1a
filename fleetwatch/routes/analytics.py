from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request
from typing import Any, Dict, List, Optional, Union
import time

from pydantic import BaseModel

from fleetwatch.dependencies.rate_limit import rate_limit
from fleetwatch.dependencies.services import get_analytics_service
from fleetwatch.exceptions import ValidationError
from fleetwatch.schemas.analytics import CacheRefreshRequest
from fleetwatch.services.analytics import AnalyticsService
from fleetwatch.utils.timeutils import utcnow
from fleetwatch.utils.validators import (
    sanitize_activity_params,
    sanitize_alert_summary_params,
    sanitize_analytics_params,
    sanitize_fuel_params,
    validate_activity_query,
    validate_alert_summary_query,
    validate_analytics_query,
    validate_fuel_query,
)

router = APIRouter(prefix="/analytics", tags=["Analytics"], dependencies=[Depends(rate_limit("general"))])

read_limited = [Depends(rate_limit("read"))]

LIST_PARAMS = ("severities", "alertTypes")


def _query_params(request: Request) -> Dict[str, Any]:
    """Flatten the query string; list parameters keep every repeated value"""
    params: Dict[str, Any] = {}
    for name in request.query_params.keys():
        if name in LIST_PARAMS:
            params[name] = request.query_params.getlist(name)
        else:
            params[name] = request.query_params.get(name)
    return params


def _check(errors: List[Dict[str, Any]]):
    if errors:
        raise ValidationError("Invalid query parameters", errors)


def _dump(data: Union[BaseModel, List[BaseModel]]) -> Any:
    if isinstance(data, list):
        return [item.model_dump(mode="json", by_alias=True) for item in data]
    return data.model_dump(mode="json", by_alias=True)


def _respond(data: Union[BaseModel, List[BaseModel]], started: float) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "responseTime": round((time.perf_counter() - started) * 1000, 2),
        "timestamp": utcnow().isoformat(),
    }
    if isinstance(data, list):
        metadata["count"] = len(data)
    return {
        "success": True,
        "data": _dump(data),
        "timestamp": utcnow().isoformat(),
        "metadata": metadata,
    }


@router.get("/fleet", dependencies=read_limited)
async def fleet_analytics(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_analytics_query(params))
    query = sanitize_analytics_params(params)

    result = await service.get_fleet_analytics(query.fleet_id, query.time_window)
    return _respond(result, started)


@router.get("/activity", dependencies=read_limited)
async def activity_status(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_activity_query(params))
    query = sanitize_activity_params(params)

    result = await service.get_vehicle_activity_status(query.fleet_id, query.inactive_threshold)
    return _respond(result, started)


@router.get("/fuel", dependencies=read_limited)
async def fuel_analytics(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_fuel_query(params))
    query = sanitize_fuel_params(params)

    result = await service.get_fleet_fuel_analytics(query.fleet_id, query.low_threshold, query.critical_threshold)
    return _respond(result, started)


@router.get("/distance", dependencies=read_limited)
async def distance_analytics(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_analytics_query(params))
    query = sanitize_analytics_params(params)

    result = await service.get_fleet_distance_analytics(query.fleet_id, query.time_window)
    return _respond(result, started)


@router.get("/alerts/summary", dependencies=read_limited)
async def alert_summary(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_alert_summary_query(params))
    query = sanitize_alert_summary_params(params)

    result = await service.get_alert_summary(
        fleet_id=query.fleet_id,
        time_window=query.time_window,
        resolved=query.resolved,
        alert_types=query.alert_types,
        severities=query.severities,
        start_time=query.start_time,
        end_time=query.end_time,
    )
    return _respond(result, started)


@router.get("/vehicles/activity", dependencies=read_limited)
async def vehicle_activity(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_activity_query(params))
    query = sanitize_activity_params(params)

    result = await service.get_detailed_vehicle_activity(query.fleet_id, query.time_window)
    return _respond(result, started)


@router.get("/vehicles/distances", dependencies=read_limited)
async def vehicle_distances(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_analytics_query(params))
    query = sanitize_analytics_params(params)

    result = await service.get_detailed_vehicle_distances(query.fleet_id, query.time_window)
    return _respond(result, started)


@router.get("/vehicles/fuel", dependencies=read_limited)
async def vehicle_fuel_status(request: Request, service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    params = _query_params(request)
    _check(validate_fuel_query(params))
    query = sanitize_fuel_params(params)

    # fleetId is accepted but the status list covers every vehicle
    result = await service.get_detailed_fuel_status(query.low_threshold, query.critical_threshold)
    return _respond(result, started)


@router.post("/cache/refresh", dependencies=[Depends(rate_limit("heavy"))])
async def refresh_cache(background_tasks: BackgroundTasks,
                        body: Optional[CacheRefreshRequest] = Body(None),
                        service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    fleet_id = body.fleet_id if body else None

    if fleet_id is not None:
        if not fleet_id.strip():
            raise ValidationError("Fleet ID must be a non-empty string")
        fleet_id = fleet_id.strip()

    removed = service.refresh_cache(fleet_id)
    background_tasks.add_task(service.warm_cache, fleet_id)

    return {
        "success": True,
        "message": f"Cache refreshed for fleet {fleet_id}" if fleet_id else "Cache refreshed for all fleets",
        "timestamp": utcnow().isoformat(),
        "metadata": {
            "responseTime": round((time.perf_counter() - started) * 1000, 2),
            "timestamp": utcnow().isoformat(),
            "invalidated": removed,
        },
    }


@router.get("/cache/stats", dependencies=read_limited)
async def cache_stats(service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    return _respond(service.get_cache_stats(), started)


@router.get("/health")
async def analytics_health(service: AnalyticsService = Depends(get_analytics_service)):
    started = time.perf_counter()
    return _respond(await service.get_analytics_health(), started)
