from pydantic import Field
from typing import Optional, Literal, List, Tuple

from .base import CamelModel

ReportStatus = Literal["new", "investigating", "resolved"]

class UserReportCreate(CamelModel):
    type: Literal["flood", "outage", "other"]
    location: Tuple[float, float]  # [lng, lat]
    description: str = Field(..., min_length=1)
    severity: Literal["low", "medium", "high"]
    reporter_name: Optional[str] = None
    reporter_contact: Optional[str] = None
    images: List[str] = []

class ReportStatusUpdate(CamelModel):
    report_id: str
    status: ReportStatus

class ReportVote(CamelModel):
    report_id: str = Field(..., min_length=1)
    vote_type: Literal["up", "down", "remove"]

class ReportApprove(CamelModel):
    report_id: str = Field(..., min_length=1)
