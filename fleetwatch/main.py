from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fleetwatch.config import Settings
from fleetwatch.database import close_client, ensure_indexes, get_database, ping
from fleetwatch.dependencies.rate_limit import rate_limit
from fleetwatch.exceptions import FleetwatchError
from fleetwatch.middleware.request_logging import request_logging_middleware
from fleetwatch.repositories.alert import AlertRepository
from fleetwatch.repositories.analytics import AnalyticsRepository
from fleetwatch.repositories.telemetry import TelemetryRepository
from fleetwatch.repositories.vehicle import VehicleRepository
from fleetwatch.routes import alerts, analytics, telemetry, vehicles
from fleetwatch.services.alert import AlertService
from fleetwatch.services.analytics import AnalyticsService
from fleetwatch.services.telemetry import TelemetryService
from fleetwatch.services.vehicle import VehicleService
from fleetwatch.utils.cache import ResultCache
from fleetwatch.utils.rate_limiter import build_rate_limiters
from fleetwatch.utils.timeutils import utcnow

logging.basicConfig(level=Settings().LOG_LEVEL)
logger = logging.getLogger(__name__)


def _error_response(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder({**body, "timestamp": utcnow()}))


def create_app(database: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. ``database`` overrides the configured MongoDB (used by tests)."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("🚀 Fleetwatch starting up...")
        db = database if database is not None else get_database(settings)

        try:
            await run_in_threadpool(ensure_indexes, db)
        except PyMongoError as e:
            logger.error(f"⚠️ Index creation warning: {e}")

        vehicle_repository = VehicleRepository(db)
        cache = ResultCache(max_entries=settings.CACHE_MAX_ENTRIES)

        app.state.db = db
        app.state.analytics_service = AnalyticsService(AnalyticsRepository(db), cache, settings)
        app.state.vehicle_service = VehicleService(vehicle_repository)
        app.state.telemetry_service = TelemetryService(TelemetryRepository(db), vehicle_repository)
        app.state.alert_service = AlertService(AlertRepository(db), vehicle_repository)
        logger.info("✅ Services ready")

        yield

        # Shutdown
        logger.info("🔄 Fleetwatch shutting down...")
        cache.clear()
        if database is None:
            close_client()

    app = FastAPI(title="Fleetwatch", lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiters = build_rate_limiters() if settings.RATE_LIMIT_ENABLED else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(request_logging_middleware)

    @app.exception_handler(FleetwatchError)
    async def fleetwatch_error_handler(request: Request, exc: FleetwatchError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]),
                "message": err["msg"],
                "value": err.get("input"),
            }
            for err in exc.errors()
        ]
        return _error_response(400, {"success": False, "error": "Invalid request data", "details": details})

    app.include_router(vehicles.router)
    app.include_router(telemetry.router)
    app.include_router(alerts.router)
    app.include_router(analytics.router)

    @app.get("/")
    def read_root():
        return {"message": "Fleetwatch backend is running"}

    @app.get("/health", dependencies=[Depends(rate_limit("health"))])
    def health_check(request: Request):
        """Liveness check that also pings the store"""
        if ping(request.app.state.db):
            return {"status": "ok", "database": "connected"}
        return JSONResponse(status_code=500, content={"status": "error", "database": "disconnected"})

    return app


app = create_app()
