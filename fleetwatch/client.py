"""
Polling client for the Fleetwatch API, as used by the dashboard.

Every call is retried up to ``retry_attempts`` times with exponential backoff
(1s, 2s, ...). Client errors (4xx other than 408/429) fail immediately.
"""
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from tenacity import Retrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from fleetwatch.schemas.analytics import (
    ActivityStatus,
    AlertSummary,
    AnalyticsHealth,
    CacheStats,
    DistanceAnalytics,
    FleetAnalytics,
    FuelAnalytics,
    VehicleActivity,
    VehicleDistance,
    VehicleFuelStatus,
)
from fleetwatch.schemas.telemetry import TelemetryHistory, TelemetryPublic

logger = logging.getLogger(__name__)

NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"
HTTP_ERROR = "HTTP_ERROR"

RETRYABLE_CLIENT_STATUSES = (408, 429)
MAX_RETRY_DELAY = 30


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None,
                 details: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    @property
    def retryable(self) -> bool:
        if self.code in (NETWORK_ERROR, TIMEOUT):
            return True
        return self.status is not None and (self.status >= 500 or self.status in RETRYABLE_CLIENT_STATUSES)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ApiError) and error.retryable


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class FleetwatchClient:
    def __init__(self, base_url: str = "http://localhost:3000", retry_attempts: int = 3,
                 retry_delay: float = 1.0, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def _request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None,
                 json: Any = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_delay, max=MAX_RETRY_DELAY),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=time.sleep,
            reraise=True,
        )
        return retrying(self._send, method, url, params, json)

    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]], json: Any) -> Any:
        try:
            response = self.session.request(method, url, params=_clean(params or {}), json=json,
                                            timeout=self.timeout)
        except requests.Timeout as e:
            raise ApiError("Request timeout", 408, TIMEOUT) from e
        except requests.ConnectionError as e:
            raise ApiError("Network error - please check your connection", 0, NETWORK_ERROR) from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(
                message or f"HTTP {response.status_code}: {response.reason}",
                response.status_code,
                HTTP_ERROR,
                body.get("details") if isinstance(body, dict) else None,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _data(self, endpoint: str, **params) -> Any:
        return self._request("GET", endpoint, params=params)["data"]

    # Analytics

    def get_fleet_analytics(self, fleet_id: Optional[str] = None,
                            time_window: Optional[float] = None) -> FleetAnalytics:
        return FleetAnalytics(**self._data("/analytics/fleet", fleetId=fleet_id, timeWindow=time_window))

    def get_activity_status(self, fleet_id: Optional[str] = None,
                            inactive_threshold: Optional[float] = None) -> ActivityStatus:
        return ActivityStatus(**self._data("/analytics/activity", fleetId=fleet_id,
                                           inactiveThreshold=inactive_threshold))

    def get_fuel_analytics(self, fleet_id: Optional[str] = None) -> FuelAnalytics:
        return FuelAnalytics(**self._data("/analytics/fuel", fleetId=fleet_id))

    def get_distance_analytics(self, fleet_id: Optional[str] = None,
                               time_window: Optional[float] = None) -> DistanceAnalytics:
        return DistanceAnalytics(**self._data("/analytics/distance", fleetId=fleet_id, timeWindow=time_window))

    def get_alert_summary(self, fleet_id: Optional[str] = None, time_window: Optional[float] = None,
                          resolved: Optional[bool] = None, severities: Optional[List[str]] = None,
                          alert_types: Optional[List[str]] = None) -> AlertSummary:
        return AlertSummary(**self._data(
            "/analytics/alerts/summary",
            fleetId=fleet_id,
            timeWindow=time_window,
            resolved=resolved,
            severities=severities,
            alertTypes=alert_types,
        ))

    def get_vehicle_activity(self, fleet_id: Optional[str] = None,
                             time_window: Optional[float] = None) -> List[VehicleActivity]:
        data = self._data("/analytics/vehicles/activity", fleetId=fleet_id, timeWindow=time_window)
        return [VehicleActivity(**item) for item in data]

    def get_vehicle_distances(self, fleet_id: Optional[str] = None,
                              time_window: Optional[float] = None) -> List[VehicleDistance]:
        data = self._data("/analytics/vehicles/distances", fleetId=fleet_id, timeWindow=time_window)
        return [VehicleDistance(**item) for item in data]

    def get_vehicle_fuel_status(self) -> List[VehicleFuelStatus]:
        return [VehicleFuelStatus(**item) for item in self._data("/analytics/vehicles/fuel")]

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(**self._data("/analytics/cache/stats"))

    def refresh_cache(self, fleet_id: Optional[str] = None) -> Dict[str, Any]:
        body = {"fleetId": fleet_id} if fleet_id else None
        return self._request("POST", "/analytics/cache/refresh", json=body)

    # Telemetry

    def get_telemetry_history(self, vin: str, start_time: Optional[str] = None,
                              end_time: Optional[str] = None) -> TelemetryHistory:
        data = self._request("GET", f"/telemetry/{vin}/history",
                             params={"startTime": start_time, "endTime": end_time})
        return TelemetryHistory(**data)

    def get_latest_telemetry(self, vin: str) -> TelemetryPublic:
        return TelemetryPublic(**self._request("GET", f"/telemetry/{vin}/latest"))

    # Health

    def get_health_status(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def get_analytics_health(self) -> AnalyticsHealth:
        return AnalyticsHealth(**self._data("/analytics/health"))

    def wait_for_server(self, timeout: float = 60, check_interval: float = 2) -> bool:
        """
        Poll /analytics/health until the server reaches its store, or ``timeout`` elapses.

        /health allows one request per minute per client, so it cannot be polled.
        """
        deadline = time.time() + timeout
        while time.time() < deadline:
            try:
                body = self._send("GET", f"{self.base_url}/analytics/health", None, None)
                if body["data"]["status"] != "unhealthy":
                    return True
                logger.info("⏳ Server is up, waiting for the database")
            except ApiError as e:
                logger.info(f"⏳ Server not ready yet: {e.message}")
            time.sleep(check_interval)

        logger.warning("⏰ Timeout waiting for server")
        return False
