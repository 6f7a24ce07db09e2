from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import get_db
from app.dependencies import get_dispatcher, get_rule_engine, require_admin
from app.models.zone import Zone
from app.schemas.messages import ZONE_CREATED, ZONE_UPDATED, ZONE_DELETED, ZONES_CLEARED
from app.schemas.zone import ZoneCreate, ZoneUpdate
from app.services.broadcast import BroadcastDispatcher
from app.services.rule_engine import RuleEngine, DEFAULT_MAX_AGE_MS
from app.services.stores import ZoneStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/zones", tags=["zones"])

def _listify(points):
    return [list(p) for p in points] if points is not None else None

@router.get("")
async def get_zones(type: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Get all zones, newest first"""
    zones = ZoneStore(db).get_all_zones(type)
    return {"zones": [z.to_dict() for z in zones]}

@router.post("", status_code=201)
async def create_zone(
    payload: ZoneCreate,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Create a manual zone"""
    zone = Zone(
        id=payload.id,
        type=payload.type,
        shape=payload.shape,
        center=list(payload.center) if payload.center else None,
        radius=payload.radius,
        coordinates=_listify(payload.coordinates),
        risk_level=payload.risk_level,
        title=payload.title,
        description=payload.description,
    )
    if zone.id and ZoneStore(db).get_zone(zone.id):
        raise HTTPException(status_code=400, detail="Zone id already exists")
    zone = ZoneStore(db).create_zone(zone)
    await dispatcher.broadcast(ZONE_CREATED, zone.to_dict())
    return {"zone": zone.to_dict()}

@router.delete("", dependencies=[Depends(require_admin)])
async def delete_all_zones(
    type: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Delete every zone, or every zone of one type"""
    count = ZoneStore(db).delete_all_zones(type)
    logger.info(f"Cleared {count} zone(s) (type={type or 'all'})")
    await dispatcher.broadcast(ZONES_CLEARED, {"type": type, "count": count})
    return {"message": "Zones deleted", "count": count}

@router.post("/cleanup", dependencies=[Depends(require_admin)])
async def cleanup_automated_zones(
    max_age_ms: int = Query(DEFAULT_MAX_AGE_MS, alias="maxAgeMs", ge=0),
    db: Session = Depends(get_db),
    rule_engine: RuleEngine = Depends(get_rule_engine),
):
    """Run the automated-zone retention sweep now"""
    removed = await rule_engine.cleanup_old_automated_zones(db, max_age_ms)
    return {"removed": removed, "count": len(removed)}

@router.get("/{zone_id}")
async def get_zone(zone_id: str, db: Session = Depends(get_db)):
    zone = ZoneStore(db).get_zone(zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")
    return {"zone": zone.to_dict()}

@router.patch("/{zone_id}")
async def update_zone(
    zone_id: str,
    payload: ZoneUpdate,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    updates = payload.model_dump(exclude_unset=True)
    if "center" in updates and updates["center"] is not None:
        updates["center"] = list(updates["center"])
    if "coordinates" in updates:
        updates["coordinates"] = _listify(updates["coordinates"])

    zone = ZoneStore(db).update_zone(zone_id, updates)
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")
    await dispatcher.broadcast(ZONE_UPDATED, zone.to_dict())
    return {"message": "Zone updated", "zone": zone.to_dict()}

@router.delete("/{zone_id}")
async def delete_zone(
    zone_id: str,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    if not ZoneStore(db).delete_zone(zone_id):
        raise HTTPException(status_code=404, detail="Zone not found")
    await dispatcher.broadcast(ZONE_DELETED, {"zoneId": zone_id})
    return {"message": "Zone deleted"}
