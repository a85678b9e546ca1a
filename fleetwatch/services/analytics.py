"""
Fleet analytics: aggregation results shaped, rounded and cached.

Every public operation follows the same path: build a deterministic cache
key, return the cached value on a hit, otherwise run the repository
aggregations in the threadpool and cache the shaped result. Concurrent
misses on one key share a single computation.
"""
from starlette.concurrency import run_in_threadpool
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import logging
import time

from fleetwatch.config import ANALYTICS_DEFAULTS, Settings
from fleetwatch.exceptions import CacheRefreshFailure, FleetwatchError, UpstreamUnavailable, ValidationError
from fleetwatch.repositories.analytics import AnalyticsRepository
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
from fleetwatch.utils import analytics as calc
from fleetwatch.utils.cache import ResultCache, build_cache_key, fleet_scope
from fleetwatch.utils.timeutils import cutoff_for, utcnow

logger = logging.getLogger(__name__)

MAX_TIME_WINDOW = ANALYTICS_DEFAULTS["MAX_TIME_WINDOW"]
DEFAULT_WINDOW = ANALYTICS_DEFAULTS["TIME_WINDOW"]


class AnalyticsService:
    def __init__(self, repository: AnalyticsRepository, cache: ResultCache, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.repository = repository
        self.cache = cache
        self.cache_ttl = settings.CACHE_TTL_SECONDS
        self._in_flight: Dict[str, asyncio.Future] = {}

    # ----------------------------------------------------------------------
    # Plumbing
    # ----------------------------------------------------------------------

    async def _cached(self, key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._compute_and_store(key, compute))
            self._in_flight[key] = pending
            pending.add_done_callback(lambda task: self._forget(key, task))

        # Shielded so a cancelled caller does not cancel the shared computation
        return await asyncio.shield(pending)

    async def _compute_and_store(self, key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        result = await compute()
        self.cache.set(key, result, self.cache_ttl)
        return result

    def _forget(self, key: str, task: asyncio.Future):
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _run(self, operation: str, key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        started = time.perf_counter()
        try:
            return await self._cached(key, compute)
        except FleetwatchError:
            raise
        except Exception as e:
            self._handle_error(operation, e, started)
            raise UpstreamUnavailable(f"Failed to retrieve {operation}") from e

    @staticmethod
    def _handle_error(operation: str, error: Exception, started: float):
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.error(f"❌ Analytics {operation} failed after {elapsed_ms:.0f}ms: {error}")

    @staticmethod
    def _check_time_window(hours: float, field: str = "timeWindow") -> float:
        if hours is None or hours <= 0 or hours > MAX_TIME_WINDOW:
            raise ValidationError("Invalid time window", [{
                "field": field,
                "message": f"Time window must be a positive number of hours (max {MAX_TIME_WINDOW})",
                "value": hours,
            }])
        return hours

    # ----------------------------------------------------------------------
    # Summaries
    # ----------------------------------------------------------------------

    async def get_fleet_analytics(self, fleet_id: Optional[str] = None,
                                  time_window: float = DEFAULT_WINDOW) -> FleetAnalytics:
        time_window = self._check_time_window(time_window)
        key = build_cache_key("fleet_analytics", fleet_id, time_window=time_window)

        async def compute() -> FleetAnalytics:
            now = utcnow()
            cutoff = cutoff_for(time_window, now)
            total = await run_in_threadpool(self.repository.get_total_vehicle_count, fleet_id)
            active = await run_in_threadpool(self.repository.get_active_vehicle_count, cutoff, fleet_id)
            average_fuel = await run_in_threadpool(self.repository.get_average_fuel_level, fleet_id)
            ranges = await run_in_threadpool(self.repository.get_odometer_ranges, cutoff, fleet_id)
            alert_summary = await self._compute_alert_summary(fleet_id, time_window, now)

            return FleetAnalytics(
                active_vehicles=active,
                inactive_vehicles=max(0, total - active),
                total_vehicles=total,
                average_fuel_level=calc.round2(average_fuel),
                total_distance_last24h=calc.total_distance(
                    calc.odometer_distance(r["min_odometer"], r["max_odometer"]) for r in ranges
                ),
                alert_summary=alert_summary,
                last_updated=now,
            )

        return await self._run("fleet analytics", key, compute)

    async def get_vehicle_activity_status(self, fleet_id: Optional[str] = None,
                                          inactive_threshold: float = ANALYTICS_DEFAULTS["INACTIVE_THRESHOLD"]
                                          ) -> ActivityStatus:
        inactive_threshold = self._check_time_window(inactive_threshold, "inactiveThreshold")
        key = build_cache_key("activity_status", fleet_id, inactive_threshold=inactive_threshold)

        async def compute() -> ActivityStatus:
            cutoff = cutoff_for(inactive_threshold)
            total = await run_in_threadpool(self.repository.get_total_vehicle_count, fleet_id)
            active = await run_in_threadpool(self.repository.get_active_vehicle_count, cutoff, fleet_id)
            return ActivityStatus(
                active=active,
                inactive=max(0, total - active),
                inactive_threshold=inactive_threshold,
            )

        return await self._run("vehicle activity status", key, compute)

    async def get_fleet_fuel_analytics(self, fleet_id: Optional[str] = None,
                                       low_threshold: float = ANALYTICS_DEFAULTS["LOW_FUEL_THRESHOLD"],
                                       critical_threshold: float = ANALYTICS_DEFAULTS["CRITICAL_FUEL_THRESHOLD"]
                                       ) -> FuelAnalytics:
        key = build_cache_key("fuel_analytics", fleet_id, low_threshold=low_threshold,
                              critical_threshold=critical_threshold)

        async def compute() -> FuelAnalytics:
            average_fuel = await run_in_threadpool(self.repository.get_average_fuel_level, fleet_id)
            # Low/critical counts come from the fleet-wide status list
            statuses = await self._fuel_statuses(low_threshold, critical_threshold)
            return FuelAnalytics(
                average_fuel_level=calc.round2(average_fuel),
                low_fuel_vehicles=sum(1 for s in statuses if s.is_low_fuel),
                critical_fuel_vehicles=sum(1 for s in statuses if s.is_critical_fuel),
                fleet_id=fleet_id,
                last_updated=utcnow(),
            )

        return await self._run("fuel analytics", key, compute)

    async def get_fleet_distance_analytics(self, fleet_id: Optional[str] = None,
                                           time_window: float = DEFAULT_WINDOW) -> DistanceAnalytics:
        time_window = self._check_time_window(time_window)
        key = build_cache_key("distance_analytics", fleet_id, time_window=time_window)

        async def compute() -> DistanceAnalytics:
            ranges = await run_in_threadpool(self.repository.get_odometer_ranges, cutoff_for(time_window), fleet_id)
            distances = [calc.odometer_distance(r["min_odometer"], r["max_odometer"]) for r in ranges]
            total = sum(distances)
            return DistanceAnalytics(
                total_distance=calc.round2(total),
                average_distance_per_vehicle=calc.round2(calc.average(distances)),
                time_window=time_window,
                vehicle_count=len(distances),
                fleet_id=fleet_id,
                last_updated=utcnow(),
            )

        return await self._run("distance analytics", key, compute)

    async def get_alert_summary(self, fleet_id: Optional[str] = None, time_window: float = DEFAULT_WINDOW,
                                resolved: Optional[bool] = None, alert_types: Optional[List[str]] = None,
                                severities: Optional[List[str]] = None, start_time: Optional[datetime] = None,
                                end_time: Optional[datetime] = None) -> AlertSummary:
        time_window = self._check_time_window(time_window)
        key = build_cache_key(
            "alert_summary", fleet_id, time_window=time_window, resolved=resolved,
            alert_types=alert_types, severities=severities,
            start_time=start_time.isoformat() if start_time else None,
            end_time=end_time.isoformat() if end_time else None,
        )

        async def compute() -> AlertSummary:
            return await self._compute_alert_summary(fleet_id, time_window, utcnow(), resolved,
                                                      alert_types, severities, start_time, end_time)

        return await self._run("alert summary", key, compute)

    async def _compute_alert_summary(self, fleet_id: Optional[str], time_window: float, now: datetime,
                                     resolved: Optional[bool] = None, alert_types: Optional[List[str]] = None,
                                     severities: Optional[List[str]] = None,
                                     start_time: Optional[datetime] = None,
                                     end_time: Optional[datetime] = None) -> AlertSummary:
        # An explicit start time overrides the trailing window
        cutoff = start_time or cutoff_for(time_window, now)
        counts = await run_in_threadpool(
            self.repository.get_alert_counts, cutoff, fleet_id, resolved, alert_types, severities, end_time
        )
        return AlertSummary(
            by_type=counts["by_type"],
            by_severity=counts["by_severity"],
            total=counts["total"],
            time_window=time_window,
            last_updated=now,
        )

    # ----------------------------------------------------------------------
    # Per-vehicle detail
    # ----------------------------------------------------------------------

    async def get_detailed_vehicle_activity(self, fleet_id: Optional[str] = None,
                                            time_window: float = DEFAULT_WINDOW) -> List[VehicleActivity]:
        time_window = self._check_time_window(time_window)
        key = build_cache_key("vehicle_activity", fleet_id, time_window=time_window)

        async def compute() -> List[VehicleActivity]:
            vins = await run_in_threadpool(self.repository.get_fleet_vins, fleet_id)
            last_seen = await run_in_threadpool(self.repository.get_last_telemetry_times, fleet_id)
            now = utcnow()
            return [
                VehicleActivity(**calc.vehicle_activity(vin, last_seen.get(vin), time_window, now))
                for vin in vins
            ]

        return await self._run("vehicle activity details", key, compute)

    async def get_detailed_vehicle_distances(self, fleet_id: Optional[str] = None,
                                             time_window: float = DEFAULT_WINDOW) -> List[VehicleDistance]:
        time_window = self._check_time_window(time_window)
        key = build_cache_key("vehicle_distances", fleet_id, time_window=time_window)

        async def compute() -> List[VehicleDistance]:
            ranges = await run_in_threadpool(self.repository.get_odometer_ranges, cutoff_for(time_window), fleet_id)
            details = []
            for r in ranges:
                detail = calc.vehicle_distance(r["vehicle_vin"], r["min_odometer"], r["max_odometer"], time_window)
                detail["distance_traveled"] = calc.round2(detail["distance_traveled"])
                details.append(VehicleDistance(**detail))
            return details

        return await self._run("vehicle distance details", key, compute)

    async def get_detailed_fuel_status(self, low_threshold: float = ANALYTICS_DEFAULTS["LOW_FUEL_THRESHOLD"],
                                       critical_threshold: float = ANALYTICS_DEFAULTS["CRITICAL_FUEL_THRESHOLD"]
                                       ) -> List[VehicleFuelStatus]:
        key = build_cache_key("fuel_status", None, low_threshold=low_threshold,
                              critical_threshold=critical_threshold)

        async def compute() -> List[VehicleFuelStatus]:
            return await self._fuel_statuses(low_threshold, critical_threshold)

        return await self._run("fuel status details", key, compute)

    async def _fuel_statuses(self, low_threshold: float, critical_threshold: float) -> List[VehicleFuelStatus]:
        readings = await run_in_threadpool(self.repository.get_latest_readings, None)
        return [
            VehicleFuelStatus(**calc.fuel_status(
                r["vehicle_vin"], r["fuel_battery_level"], r["timestamp"], low_threshold, critical_threshold
            ))
            for r in readings
        ]

    # ----------------------------------------------------------------------
    # Cache management
    # ----------------------------------------------------------------------

    def refresh_cache(self, fleet_id: Optional[str] = None) -> int:
        """Drop cached results for ``fleet_id`` (plus all-fleet results), or everything"""
        removed = self.cache.invalidate(fleet_scope(fleet_id))
        logger.info(f"🔄 Invalidated {removed} cached analytics entries for {fleet_id or 'all fleets'}")
        return removed

    async def warm_cache(self, fleet_id: Optional[str] = None):
        """
        Recompute the primary views concurrently.

        Each view is warmed independently: one failing view does not keep the
        others out of the cache. Failures are logged, never raised.
        """
        scope = fleet_id or "all fleets"
        views = {
            "fleet analytics": self.get_fleet_analytics(fleet_id),
            "vehicle activity status": self.get_vehicle_activity_status(fleet_id),
            "fuel analytics": self.get_fleet_fuel_analytics(fleet_id),
            "distance analytics": self.get_fleet_distance_analytics(fleet_id),
            "alert summary": self.get_alert_summary(fleet_id),
        }
        results = await asyncio.gather(
            *(self._warm_view(view, load, fleet_id) for view, load in views.items()),
            return_exceptions=True,
        )

        failures = 0
        for result in results:
            if isinstance(result, CacheRefreshFailure):
                failures += 1
                logger.error(f"⚠️ Cache warm-up failed for {scope}: {result.message}")
            elif isinstance(result, BaseException):
                raise result

        if failures:
            logger.warning(f"⚠️ Analytics cache partially warmed for {scope} ({failures}/{len(views)} views failed)")
        else:
            logger.info(f"✅ Analytics cache warmed for {scope}")

    @staticmethod
    async def _warm_view(view: str, load: Awaitable[Any], fleet_id: Optional[str]):
        try:
            await load
        except FleetwatchError as e:
            raise CacheRefreshFailure(
                f"{view}: {e.message}",
                [{"field": "fleetId", "message": e.message, "value": fleet_id}],
            ) from e

    def clear_cache(self):
        self.cache.clear()

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(**self.cache.stats())

    async def get_analytics_health(self) -> AnalyticsHealth:
        started = time.perf_counter()
        try:
            await run_in_threadpool(self.repository.get_total_vehicle_count, None)
        except Exception as e:
            self._handle_error("health check", e, started)
            return AnalyticsHealth(status="unhealthy", cache_size=len(self.cache), last_update=utcnow())

        elapsed_ms = (time.perf_counter() - started) * 1000
        return AnalyticsHealth(
            status=calc.response_status(elapsed_ms),
            cache_size=len(self.cache),
            last_update=utcnow(),
            response_time=calc.round2(elapsed_ms),
        )
