from .zone import ZoneCreate, ZoneUpdate
from .sensor import SensorCreate, SensorDataIn
from .sensor_rule import SensorRuleCreate, SensorRuleUpdate
from .user_report import UserReportCreate, ReportStatusUpdate, ReportVote, ReportApprove
from .prediction import PredictionCreate
from .camera import CameraCreate
from .messages import Envelope

__all__ = [
    "ZoneCreate",
    "ZoneUpdate",
    "SensorCreate",
    "SensorDataIn",
    "SensorRuleCreate",
    "SensorRuleUpdate",
    "UserReportCreate",
    "ReportStatusUpdate",
    "ReportVote",
    "ReportApprove",
    "PredictionCreate",
    "CameraCreate",
    "Envelope"
]
