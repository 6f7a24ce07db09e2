from .zones import router as zones_router
from .sensors import router as sensors_router, data_router as sensor_data_router
from .sensor_rules import router as sensor_rules_router
from .user_reports import router as user_reports_router
from .predictions import router as predictions_router
from .cameras import router as cameras_router
from .notifications import router as notifications_router
from .realtime import router as realtime_router
from .health import router as health_router

__all__ = [
    "zones_router",
    "sensors_router",
    "sensor_data_router",
    "sensor_rules_router",
    "user_reports_router",
    "predictions_router",
    "cameras_router",
    "notifications_router",
    "realtime_router",
    "health_router",
]
