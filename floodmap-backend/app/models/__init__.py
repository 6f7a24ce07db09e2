from app.database import Base
from .zone import Zone
from .sensor import Sensor, SensorDataPoint
from .sensor_rule import SensorRule
from .camera import Camera
from .user_report import UserReport
from .prediction import Prediction

__all__ = [
    "Base",
    "Zone",
    "Sensor",
    "SensorDataPoint",
    "SensorRule",
    "Camera",
    "UserReport",
    "Prediction"
]
