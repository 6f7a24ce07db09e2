from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.dependencies import get_registry
from app.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

@router.get("/healthz")
async def liveness(registry: ConnectionRegistry = Depends(get_registry)):
    """Process is up; reports live socket count"""
    return {"status": "ok", "service": "floodmap-api", "connections": len(registry)}

@router.get("/api/v1/health")
async def readiness(db: Session = Depends(get_db)):
    """Database reachable"""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.exception(f"Health check could not reach the database: {e}")
        database = "unavailable"
    return {"status": "ok" if database == "ok" else "degraded", "api_version": "v1", "database": database}
