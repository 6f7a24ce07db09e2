"""
Fan-out of event envelopes to registered sockets.

Delivery is best-effort: a failing socket is logged and skipped, it never
blocks the remaining recipients. Nothing is queued for offline users.
"""
from typing import Any, Optional, Union
import json
import logging

from app.schemas.messages import Envelope
from app.services.connection_registry import ConnectionRegistry, Role

logger = logging.getLogger(__name__)

def encode(message: Union[Envelope, str, dict]) -> str:
    if isinstance(message, Envelope):
        return message.to_json()
    if isinstance(message, str):
        return message
    return json.dumps(message)

class BroadcastDispatcher:
    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def send(self, handle: Any, message: Union[Envelope, str, dict]) -> bool:
        """Send one frame to one socket, returning False instead of raising"""
        try:
            await handle.send_text(encode(message))
            return True
        except Exception as e:
            conn = self.registry.connection_for(handle)
            who = conn.id if conn else "unregistered socket"
            logger.warning(f"Send to {who} failed: {e}")
            return False

    async def to_all_of_role(self, role: Role, envelope: Union[Envelope, str, dict], exclude: Optional[Any] = None) -> int:
        """Deliver to every connection of a role; returns the number of successful sends"""
        text = encode(envelope)
        delivered = 0
        for handle in self.registry.find_by_role(role):
            if exclude is not None and handle is exclude:
                continue
            if await self.send(handle, text):
                delivered += 1
        return delivered

    async def to_user(self, user_id: str, envelope: Union[Envelope, str, dict]) -> bool:
        conn = self.registry.get(user_id)
        if conn is None or conn.role != Role.USER:
            logger.warning(f"User {user_id} is not connected, notification dropped")
            return False
        return await self.send(conn.handle, envelope)

    async def broadcast(self, event_type: str, payload: Any) -> int:
        """Shortcut for the user-role event channel"""
        delivered = await self.to_all_of_role(Role.USER, Envelope(type=event_type, payload=payload))
        logger.debug(f"Broadcast {event_type} to {delivered} user socket(s)")
        return delivered
