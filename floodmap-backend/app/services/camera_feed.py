"""
Camera detection ingestion and WebRTC status bookkeeping
"""
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
import logging

from app.database import now_ms
from app.schemas.messages import CAMERA_UPDATE, DetectionMessage, Envelope
from app.services.broadcast import BroadcastDispatcher
from app.services.connection_registry import Role
from app.services.stores import CameraStore

logger = logging.getLogger(__name__)

async def handle_detection(msg: DetectionMessage, db: Session, dispatcher: BroadcastDispatcher) -> int:
    """Persist the latest counts and push a camera-update to every viewer"""
    try:
        camera = CameraStore(db).update_camera_counts(msg.camera_id, msg.counts, msg.unique_counts)
        if camera is None:
            logger.warning(f"Detection for unknown camera {msg.camera_id}, counts not stored")
    except Exception as e:
        logger.exception(f"Failed to store counts for camera {msg.camera_id}: {e}")
        db.rollback()

    envelope = Envelope(type=CAMERA_UPDATE, payload={
        "cameraId": msg.camera_id,
        "counts": msg.counts,
        "uniqueCounts": msg.unique_counts,
        "timestamp": msg.timestamp if msg.timestamp is not None else now_ms(),
    })
    delivered = await dispatcher.to_all_of_role(Role.USER, envelope)
    delivered += await dispatcher.to_all_of_role(Role.SIGNALING_PEER, envelope)
    return delivered

def record_webrtc_status(camera_id: str, peer_id: Optional[str], state: str, db: Session) -> bool:
    webrtc: Dict[str, Any] = {"state": state, "peerId": peer_id, "updatedAt": now_ms()}
    try:
        camera = CameraStore(db).update_camera_webrtc(camera_id, webrtc)
    except Exception as e:
        logger.exception(f"Failed to record WebRTC status for camera {camera_id}: {e}")
        db.rollback()
        return False
    if camera is None:
        logger.debug(f"WebRTC status for unknown camera {camera_id} not stored")
        return False
    return True
