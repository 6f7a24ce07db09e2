from pydantic import Field, model_validator
from typing import Optional, Literal, List, Tuple

from .base import CamelModel
from .sensor import ActionType

class ZoneCreate(CamelModel):
    id: Optional[str] = None
    type: ActionType
    shape: Literal["circle", "line"]
    center: Optional[Tuple[float, float]] = None
    radius: Optional[float] = Field(None, gt=0)
    coordinates: Optional[List[Tuple[float, float]]] = None
    risk_level: Optional[int] = Field(None, ge=0, le=100)
    title: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_geometry(self):
        if self.shape == "circle" and self.center is None:
            raise ValueError("circle zones require a center")
        if self.shape == "line" and len(self.coordinates or []) < 2:
            raise ValueError("line zones require at least 2 coordinates")
        return self

class ZoneUpdate(CamelModel):
    type: Optional[ActionType] = None
    center: Optional[Tuple[float, float]] = None
    radius: Optional[float] = Field(None, gt=0)
    coordinates: Optional[List[Tuple[float, float]]] = None
    risk_level: Optional[int] = Field(None, ge=0, le=100)
    title: Optional[str] = None
    description: Optional[str] = None
