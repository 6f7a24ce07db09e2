# app/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from app.database import engine, settings
from app.models import Base
from app.init_db import init_database
from app.services.broadcast import BroadcastDispatcher
from app.services.connection_registry import ConnectionRegistry
from app.services.rule_engine import RuleEngine
from app.services.scheduler import start_scheduler, stop_scheduler
from app.services.signaling import SignalingRouter

# Routers
from app.routers import (
    health_router, zones_router, sensors_router, sensor_data_router,
    sensor_rules_router, user_reports_router, predictions_router,
    cameras_router, notifications_router, realtime_router,
)

logger = logging.getLogger(__name__)

def configure_logging():
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Flood Map Realtime API",
        description="Realtime hub for flood/outage zones, sensor automation and camera signaling",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_list(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Realtime hub: one set of components per app instance
    registry = ConnectionRegistry()
    dispatcher = BroadcastDispatcher(registry)
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.signaling = SignalingRouter(registry, dispatcher)
    app.state.rule_engine = RuleEngine(dispatcher)
    app.state.scheduler = None

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Mount router
    app.include_router(health_router)            # /healthz, /api/v1/health
    app.include_router(zones_router)             # /api/zones/...
    app.include_router(sensors_router)           # /api/sensors
    app.include_router(sensor_data_router)       # /api/sensor-data/...
    app.include_router(sensor_rules_router)      # /api/sensor-rules/...
    app.include_router(user_reports_router)      # /api/user-reports
    app.include_router(predictions_router)       # /api/predictions
    app.include_router(cameras_router)           # /api/cameras/...
    app.include_router(notifications_router)     # /api/notifications/{userId}
    app.include_router(realtime_router)          # /, /ws, /signaling, /camera-feed

    # Startup: DB + seed + scheduler (idempotent)
    @app.on_event("startup")
    async def _startup():
        Base.metadata.create_all(bind=engine)
        init_database()
        if settings.cleanup_enabled:
            app.state.scheduler = start_scheduler(app.state.rule_engine)

    @app.on_event("shutdown")
    async def _shutdown():
        if app.state.scheduler is not None:
            stop_scheduler(app.state.scheduler)
            app.state.scheduler = None

    return app


app = create_app()

def run():
    import uvicorn
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
