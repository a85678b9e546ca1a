from fastapi import Request

from fleetwatch.services.alert import AlertService
from fleetwatch.services.analytics import AnalyticsService
from fleetwatch.services.telemetry import TelemetryService
from fleetwatch.services.vehicle import VehicleService


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service


def get_vehicle_service(request: Request) -> VehicleService:
    return request.app.state.vehicle_service


def get_telemetry_service(request: Request) -> TelemetryService:
    return request.app.state.telemetry_service


def get_alert_service(request: Request) -> AlertService:
    return request.app.state.alert_service
