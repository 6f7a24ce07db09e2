"""
WebRTC signaling relay between camera producers and viewer consumers.

The router never looks inside SDP or ICE payloads. Frames are forwarded as the
exact text the sender produced; the only rewrite is attaching ``peerId`` to a
consumer frame that did not carry one, so the producer can address its reply.

Producers bind themselves to a camera id with a ``register`` frame. Viewer
sessions are keyed by (cameraId, peerId) and remember which consumer
connection opened them.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import json
import logging

from app.database import now_ms
from app.schemas.messages import (
    RegisterMessage, OfferMessage, AnswerMessage, IceCandidateMessage, ConnectedMessage,
)
from app.services.broadcast import BroadcastDispatcher
from app.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)

class SessionState(str, Enum):
    IDLE = "idle"
    OFFER_SENT = "offer-sent"
    ANSWER_SENT = "answer-sent"
    CONNECTED = "connected"

@dataclass
class SignalingSession:
    camera_id: str
    peer_id: str
    consumer_id: str
    state: SessionState = SessionState.IDLE
    ice_started: bool = False
    updated_at: int = field(default_factory=now_ms)

    def advance(self, state: SessionState):
        self.state = state
        self.updated_at = now_ms()

    def to_dict(self):
        return {
            "cameraId": self.camera_id,
            "peerId": self.peer_id,
            "consumerId": self.consumer_id,
            "state": self.state.value,
            "iceStarted": self.ice_started,
            "updatedAt": self.updated_at,
        }

class SignalingRouter:
    def __init__(self, registry: ConnectionRegistry, dispatcher: BroadcastDispatcher):
        self.registry = registry
        self.dispatcher = dispatcher
        self._producers: Dict[str, str] = {}
        self._sessions: Dict[Tuple[str, str], SignalingSession] = {}

    def producer_for(self, camera_id: str) -> Optional[str]:
        """Connection id of the producer bound to a camera, None when unbound"""
        return self._producers.get(camera_id)

    def session(self, camera_id: str, peer_id: str) -> Optional[SignalingSession]:
        return self._sessions.get((camera_id, peer_id))

    async def handle(self, sender_id: str, raw: str, data: Dict[str, Any], message) -> bool:
        """Route one signaling frame; returns True when something was delivered"""
        if isinstance(message, RegisterMessage):
            self.register_producer(message.camera_id, sender_id)
            return False
        if isinstance(message, OfferMessage):
            return await self.relay_offer(sender_id, raw, data, message)
        if isinstance(message, AnswerMessage):
            return await self.relay_answer(sender_id, raw, message)
        if isinstance(message, IceCandidateMessage):
            return await self.relay_ice_candidate(sender_id, raw, data, message)
        if isinstance(message, ConnectedMessage):
            self.mark_connected(sender_id, message)
            return False
        logger.warning(f"Unhandled signaling message {type(message).__name__} from {sender_id}")
        return False

    def register_producer(self, camera_id: str, producer_id: str):
        current = self._producers.get(camera_id)
        if current and current != producer_id:
            logger.info(f"Camera {camera_id} producer replaced: {current} -> {producer_id}")
        self._producers[camera_id] = producer_id
        logger.info(f"Producer {producer_id} registered for camera {camera_id}")

    async def relay_offer(self, sender_id: str, raw: str, data: Dict[str, Any], msg: OfferMessage) -> bool:
        producer = self._producer_handle(msg.camera_id)
        if producer is None:
            logger.warning(f"No producer bound for camera {msg.camera_id}, offer from {sender_id} dropped")
            return False

        peer_id = msg.peer_id or sender_id
        session = SignalingSession(camera_id=msg.camera_id, peer_id=peer_id, consumer_id=sender_id)
        session.advance(SessionState.OFFER_SENT)
        self._sessions[(msg.camera_id, peer_id)] = session

        text = raw if msg.peer_id else json.dumps({**data, "peerId": peer_id})
        return await self.dispatcher.send(producer, text)

    async def relay_answer(self, sender_id: str, raw: str, msg: AnswerMessage) -> bool:
        if self._producers.get(msg.camera_id) != sender_id:
            logger.warning(f"Answer for camera {msg.camera_id} from non-producer {sender_id} dropped")
            return False
        if not msg.peer_id:
            logger.warning(f"Answer for camera {msg.camera_id} has no peerId, dropped")
            return False

        session = self.session(msg.camera_id, msg.peer_id)
        consumer = self.registry.find_by_id(session.consumer_id if session else msg.peer_id)
        if consumer is None:
            logger.debug(f"Consumer for peer {msg.peer_id} on camera {msg.camera_id} is gone, answer dropped")
            return False
        if session:
            session.advance(SessionState.ANSWER_SENT)
        return await self.dispatcher.send(consumer, raw)

    async def relay_ice_candidate(self, sender_id: str, raw: str, data: Dict[str, Any], msg: IceCandidateMessage) -> bool:
        if self._producers.get(msg.camera_id) == sender_id:
            # producer -> consumer
            if not msg.peer_id:
                logger.warning(f"ICE candidate from producer of {msg.camera_id} has no peerId, dropped")
                return False
            session = self.session(msg.camera_id, msg.peer_id)
            consumer = self.registry.find_by_id(session.consumer_id if session else msg.peer_id)
            if consumer is None:
                logger.debug(f"Consumer for peer {msg.peer_id} is gone, ICE candidate dropped")
                return False
            if session:
                session.ice_started = True
            return await self.dispatcher.send(consumer, raw)

        # consumer -> producer
        producer = self._producer_handle(msg.camera_id)
        if producer is None:
            logger.warning(f"No producer bound for camera {msg.camera_id}, ICE candidate from {sender_id} dropped")
            return False
        peer_id = msg.peer_id or self._peer_id_for(msg.camera_id, sender_id)
        session = self.session(msg.camera_id, peer_id)
        if session:
            session.ice_started = True
        text = raw if msg.peer_id else json.dumps({**data, "peerId": peer_id})
        return await self.dispatcher.send(producer, text)

    def mark_connected(self, sender_id: str, msg: ConnectedMessage) -> Optional[SignalingSession]:
        session = self.session(msg.camera_id, msg.peer_id) if msg.peer_id else None
        if session is None:
            logger.info(f"Camera {msg.camera_id} reports connected (peer {msg.peer_id or '-'}, no tracked session)")
            return None
        session.advance(SessionState.CONNECTED)
        logger.info(f"WebRTC session {msg.camera_id}/{msg.peer_id} connected")
        return session

    def drop_connection(self, conn_id: str):
        """Forget producer bindings and viewer sessions owned by a closed connection"""
        for camera_id, producer_id in list(self._producers.items()):
            if producer_id == conn_id:
                del self._producers[camera_id]
                logger.info(f"Producer {conn_id} left, camera {camera_id} has no producer bound")
                for key in [k for k in self._sessions if k[0] == camera_id]:
                    del self._sessions[key]
        for key, session in list(self._sessions.items()):
            if session.consumer_id == conn_id:
                del self._sessions[key]

    def status(self) -> Dict[str, Any]:
        return {
            "producers": dict(self._producers),
            "sessions": [s.to_dict() for s in self._sessions.values()],
        }

    def _producer_handle(self, camera_id: str) -> Optional[Any]:
        producer_id = self._producers.get(camera_id)
        if producer_id is None:
            return None
        handle = self.registry.find_by_id(producer_id)
        if handle is None:
            logger.warning(f"Producer {producer_id} for camera {camera_id} is no longer connected")
            del self._producers[camera_id]
        return handle

    def _peer_id_for(self, camera_id: str, consumer_id: str) -> str:
        for session in self._sessions.values():
            if session.camera_id == camera_id and session.consumer_id == consumer_id:
                return session.peer_id
        return consumer_id
