#!/usr/bin/env python3
"""
Reservoir Telemetry API - Main Application

Structure:
- controllers/  : API route handlers
- services/     : Data acquisition (stations, RCH series, InfluxDB) and alerts
- repositories/ : Database access (alerts, notifications)
- models/       : Pydantic schemas
- config/       : Configuration
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from config import ALERT_CHECK_INTERVAL_SECONDS, CORS_ORIGINS
from controllers import (
    station_router,
    rch_router,
    dam_router,
    alert_router,
    notification_router,
)
from exceptions import ReservoirDataError
from logger import setup_logging
from repositories.alert_repository import AlertRepository
from repositories.notification_repository import NotificationRepository
from services.alert_service import AlertService
from services.rch_service import RchService
from services.station_service import StationService
from services.timeseries_cache import TimeSeriesCache
from services.timeseries_store import TimeSeriesStore

logger = logging.getLogger(__name__)


async def run_alert_checks(alert_service: AlertService, interval: int):
    """
    Background task: evaluate temperature alerts every `interval` seconds.
    """
    while True:
        try:
            await alert_service.check_temperature_alerts()
        except Exception as e:
            logger.error(f"[Alerts] Periodic check failed: {e}", exc_info=True)

        await asyncio.sleep(interval)


def create_app(
    station_service: Optional[StationService] = None,
    timeseries_store: Optional[TimeSeriesStore] = None,
    rch_service: Optional[RchService] = None,
    alert_service: Optional[AlertService] = None,
    background_checks: bool = True,
) -> FastAPI:
    """
    Build the application. Services not passed in are created in the
    lifespan, once per process, and shared through app.state.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger.info("Starting reservoir telemetry API...")

        stations = station_service or StationService()
        store = timeseries_store or TimeSeriesStore()
        rch = rch_service or RchService(TimeSeriesCache())
        alerts = alert_service or AlertService(stations)

        app.state.station_service = stations
        app.state.timeseries_store = store
        app.state.rch_service = rch
        app.state.alert_service = alerts

        alert_task = None
        if background_checks:
            loop = asyncio.get_running_loop()
            db_available = await loop.run_in_executor(None, AlertRepository.check_db_available)
            app.state.db_available = db_available
            logger.info(f"Alert store: {'enabled' if db_available else 'disabled'}")

            if db_available:
                await alerts.alert_repo.run(alerts.alert_repo.ensure_schema)
                await alerts.notification_repo.run(alerts.notification_repo.ensure_schema)
                alert_task = asyncio.create_task(
                    run_alert_checks(alerts, ALERT_CHECK_INTERVAL_SECONDS)
                )
        else:
            app.state.db_available = False

        yield

        logger.info("Shutting down...")
        if alert_task:
            alert_task.cancel()
            try:
                await alert_task
            except asyncio.CancelledError:
                pass

        if station_service is None:
            await stations.aclose()
        if timeseries_store is None:
            await store.close()

    app = FastAPI(
        title="Reservoir Telemetry API",
        description="""
    Dam/reservoir and meteo station telemetry for the monitoring dashboard.

    ## Data sources:
    - **Meteo stations**: IrriStrat API (10-minute, hourly, daily)
    - **Reservoirs**: InfluxDB daily means
    - **Flow series**: RCH time-series files

    Responses are `{"data": ...}` on success and `{"error": ...}` on failure.
    """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ReservoirDataError)
    async def reservoir_error_handler(request: Request, exc: ReservoirDataError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in errors
        )
        return JSONResponse(status_code=422, content={"error": message or "Invalid request"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path}: unhandled {type(exc).__name__}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(station_router)
    app.include_router(rch_router)
    app.include_router(dam_router)
    app.include_router(alert_router)
    app.include_router(notification_router)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - API information"""
        return {
            "name": "Reservoir Telemetry API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "stations": "/stations",
                "rch": "/rch",
                "dam_data": "/dam-data",
                "alerts": "/alerts",
                "notifications": "/notifications",
            },
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint"""
        return {
            "status": "healthy",
            "database": "connected" if getattr(request.app.state, "db_available", False) else "disconnected",
            "cached_locations": len(request.app.state.rch_service.cache),
        }

    return app


app = create_app()


# Entry point
if __name__ == "__main__":
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
