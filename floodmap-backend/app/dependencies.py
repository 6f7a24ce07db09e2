from fastapi import Header, HTTPException
from starlette.requests import HTTPConnection
from typing import Optional

from app.database import settings
from app.services.broadcast import BroadcastDispatcher
from app.services.connection_registry import ConnectionRegistry
from app.services.rule_engine import RuleEngine
from app.services.signaling import SignalingRouter

# Hub components live on app.state so every app instance owns its own
def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.registry

def get_dispatcher(conn: HTTPConnection) -> BroadcastDispatcher:
    return conn.app.state.dispatcher

def get_signaling(conn: HTTPConnection) -> SignalingRouter:
    return conn.app.state.signaling

def get_rule_engine(conn: HTTPConnection) -> RuleEngine:
    return conn.app.state.rule_engine

def require_admin(x_admin_key: Optional[str] = Header(None)):
    """Role check for admin-only mutations"""
    if x_admin_key != settings.api_key_admin:
        raise HTTPException(status_code=403, detail="Admin key required")
