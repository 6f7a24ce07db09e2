from pydantic import Field
from typing import Optional, Literal, Tuple

from .base import CamelModel

SensorType = Literal["water_level", "temperature", "humidity"]
ActionType = Literal["flood", "outage"]

class SensorCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    location: Optional[Tuple[float, float]] = None  # [lng, lat]
    type: SensorType
    threshold: float
    action_type: ActionType
    action_target: Optional[str] = None

class SensorDataIn(CamelModel):
    sensor_id: str = Field(..., min_length=1)
    value: float
    timestamp: Optional[int] = None
    water_level: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
