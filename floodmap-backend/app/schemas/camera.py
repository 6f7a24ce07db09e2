from pydantic import Field
from typing import Optional, Tuple

from .base import CamelModel

class CameraCreate(CamelModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    location: Optional[Tuple[float, float]] = None
    stream_url: Optional[str] = None
