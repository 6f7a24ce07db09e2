"""
Socket message models.

Inbound frames are a closed union keyed by ``type``; anything else fails
validation and is dropped by the socket loop. Outbound broadcasts use
``Envelope``.
"""
import json
from typing import Any, Dict, Optional, Union, Literal, Annotated

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .base import CamelModel

# Outbound event tags
ZONE_CREATED = "zone_created"
ZONE_UPDATED = "zone_updated"
ZONE_DELETED = "zone_deleted"
ZONES_CLEARED = "zones_cleared"
SENSOR_CREATED = "sensor_created"
SENSOR_DELETED = "sensor_deleted"
USER_REPORT_CREATED = "user_report_created"
CAMERA_UPDATE = "camera-update"
PREDICTION = "prediction"
NOTIFICATION = "notification"

class Envelope(BaseModel):
    type: str
    payload: Any = None

    def to_json(self) -> str:
        return self.model_dump_json()

class _Inbound(CamelModel):
    class Config:
        extra = "allow"

class DetectionMessage(_Inbound):
    type: Literal["detection"]
    camera_id: str
    counts: Dict[str, int] = {}
    unique_counts: Dict[str, int] = {}
    timestamp: Optional[Union[int, float, str]] = None

class RegisterMessage(_Inbound):
    type: Literal["register"]
    camera_id: str

class OfferMessage(_Inbound):
    type: Literal["offer"]
    camera_id: str
    sdp: str
    peer_id: Optional[str] = None

class AnswerMessage(_Inbound):
    type: Literal["answer"]
    camera_id: str
    sdp: str
    peer_id: Optional[str] = None

class IceCandidateMessage(_Inbound):
    type: Literal["ice-candidate"]
    camera_id: str
    candidate: Any = None
    peer_id: Optional[str] = None

class ConnectedMessage(_Inbound):
    type: Literal["connected"]
    camera_id: str
    peer_id: Optional[str] = None

SignalingMessage = Union[RegisterMessage, OfferMessage, AnswerMessage, IceCandidateMessage, ConnectedMessage]

InboundMessage = Annotated[
    Union[DetectionMessage, RegisterMessage, OfferMessage, AnswerMessage, IceCandidateMessage, ConnectedMessage],
    Field(discriminator="type"),
]

_inbound_adapter = TypeAdapter(InboundMessage)

class MalformedMessage(ValueError):
    pass

def parse_inbound(raw: str):
    """Decode a socket frame into (plain dict, typed message)"""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedMessage("frame is not a JSON object")
    try:
        return data, _inbound_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedMessage(f"unrecognised message: {e.error_count()} error(s)") from e
