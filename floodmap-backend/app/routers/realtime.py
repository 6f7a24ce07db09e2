"""
WebSocket endpoints.

``/``            user notifications, ``userId`` query param required
``/ws``          plain relay, every JSON frame goes to all other user sockets
``/signaling``   WebRTC offer/answer/ICE relay plus detection frames
``/camera-feed`` camera detection frames, ``cameraId`` query param required
"""
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from typing import Awaitable, Callable, Optional
import json
import logging
import uuid

from app.database import SessionLocal
from app.dependencies import get_dispatcher, get_registry, get_signaling
from app.schemas.messages import (
    ConnectedMessage, DetectionMessage, MalformedMessage, parse_inbound,
)
from app.services.broadcast import BroadcastDispatcher
from app.services.camera_feed import handle_detection, record_webrtc_status
from app.services.connection_registry import ConnectionRegistry, Role
from app.services.signaling import SignalingRouter

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])

async def _next_frame(websocket: WebSocket, conn_id: str) -> Optional[str]:
    """Next frame as text; binary frames are decoded as UTF-8, None when undecodable"""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", 1000))
    if message.get("text") is not None:
        return message["text"]
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"Dropped undecodable binary frame from {conn_id}")
        return None

async def _serve(
    websocket: WebSocket,
    conn_id: str,
    role: Role,
    registry: ConnectionRegistry,
    signaling: SignalingRouter,
    on_frame: Callable[[str], Awaitable[None]],
):
    """Register the socket, feed every frame to on_frame, unregister on close"""
    await websocket.accept()
    registry.register(conn_id, role, websocket)
    logger.info(f"{role.value} connection {conn_id} opened ({len(registry)} live)")
    try:
        while True:
            raw = await _next_frame(websocket, conn_id)
            if raw is not None:
                await on_frame(raw)
    except WebSocketDisconnect:
        logger.info(f"{role.value} connection {conn_id} closed")
    except Exception as e:
        logger.exception(f"{role.value} connection {conn_id} failed: {e}")
    finally:
        conn = registry.unregister(websocket)
        if conn is not None:
            signaling.drop_connection(conn.id)

async def _detection(msg: DetectionMessage, dispatcher: BroadcastDispatcher):
    db = SessionLocal()
    try:
        await handle_detection(msg, db, dispatcher)
    finally:
        db.close()

def _parse(raw: str, conn_id: str):
    try:
        return parse_inbound(raw)
    except MalformedMessage as e:
        logger.warning(f"Dropped frame from {conn_id}: {e}")
        return None, None

@router.websocket("/")
async def user_socket(
    websocket: WebSocket,
    user_id: Optional[str] = Query(None, alias="userId"),
    registry: ConnectionRegistry = Depends(get_registry),
    signaling: SignalingRouter = Depends(get_signaling),
):
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async def on_frame(raw: str):
        # user sockets only listen
        logger.debug(f"Ignoring frame from user {user_id}")

    await _serve(websocket, user_id, Role.USER, registry, signaling, on_frame)

@router.websocket("/ws")
async def relay_socket(
    websocket: WebSocket,
    registry: ConnectionRegistry = Depends(get_registry),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
    signaling: SignalingRouter = Depends(get_signaling),
):
    conn_id = f"ws-{uuid.uuid4().hex[:12]}"

    async def on_frame(raw: str):
        try:
            json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Dropped non-JSON relay frame from {conn_id}: {e}")
            return
        await dispatcher.to_all_of_role(Role.USER, raw, exclude=websocket)

    await _serve(websocket, conn_id, Role.USER, registry, signaling, on_frame)

@router.websocket("/camera-feed")
async def camera_socket(
    websocket: WebSocket,
    camera_id: Optional[str] = Query(None, alias="cameraId"),
    registry: ConnectionRegistry = Depends(get_registry),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
    signaling: SignalingRouter = Depends(get_signaling),
):
    if not camera_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async def on_frame(raw: str):
        _, message = _parse(raw, camera_id)
        if isinstance(message, DetectionMessage):
            await _detection(message, dispatcher)
        elif message is not None:
            logger.warning(f"Camera {camera_id} sent unsupported {message.type} frame")

    await _serve(websocket, camera_id, Role.CAMERA, registry, signaling, on_frame)

@router.websocket("/signaling")
async def signaling_socket(
    websocket: WebSocket,
    user_id: Optional[str] = Query(None, alias="userId"),
    registry: ConnectionRegistry = Depends(get_registry),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
    signaling: SignalingRouter = Depends(get_signaling),
):
    conn_id = user_id or f"peer-{uuid.uuid4().hex[:12]}"

    async def on_frame(raw: str):
        data, message = _parse(raw, conn_id)
        if message is None:
            return
        if isinstance(message, DetectionMessage):
            await _detection(message, dispatcher)
            return

        await signaling.handle(conn_id, raw, data, message)

        if isinstance(message, ConnectedMessage):
            db = SessionLocal()
            try:
                record_webrtc_status(message.camera_id, message.peer_id, "connected", db)
            finally:
                db.close()

    await _serve(websocket, conn_id, Role.SIGNALING_PEER, registry, signaling, on_frame)

@router.get("/api/realtime/status")
async def realtime_status(
    registry: ConnectionRegistry = Depends(get_registry),
    signaling: SignalingRouter = Depends(get_signaling),
):
    return {
        "connections": len(registry),
        "byRole": registry.count_by_role(),
        **signaling.status(),
    }
