from pydantic import Field
from typing import Optional, Literal, Tuple

from .base import CamelModel
from .sensor import ActionType

class PredictionCreate(CamelModel):
    type: ActionType
    location: Tuple[float, float]
    probability: float = Field(..., ge=0)
    severity: Optional[Literal["low", "medium", "high"]] = None
    timestamp: Optional[int] = None
    expires_at: Optional[int] = None
