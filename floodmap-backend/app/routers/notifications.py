from fastapi import APIRouter, Depends
from pydantic import Field
from typing import Optional

from app.database import now_ms
from app.dependencies import get_dispatcher, require_admin
from app.schemas.base import CamelModel
from app.schemas.messages import NOTIFICATION, Envelope
from app.services.broadcast import BroadcastDispatcher

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

class NotificationIn(CamelModel):
    title: str = Field(..., min_length=1)
    message: str
    severity: Optional[str] = "info"

@router.post("/{user_id}", dependencies=[Depends(require_admin)])
async def notify_user(
    user_id: str,
    payload: NotificationIn,
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Push a notification to one connected user; offline users are not queued"""
    envelope = Envelope(type=NOTIFICATION, payload={**payload.model_dump(), "timestamp": now_ms()})
    delivered = await dispatcher.to_user(user_id, envelope)
    return {"userId": user_id, "delivered": delivered}
