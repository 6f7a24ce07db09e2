from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.dependencies import require_admin
from app.models.sensor_rule import SensorRule
from app.schemas.sensor_rule import SensorRuleCreate, SensorRuleUpdate, check_rule_shape
from app.services.stores import SensorRuleStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/sensor-rules", tags=["sensor-rules"])

def _metadata(payload) -> dict:
    if payload is None:
        return {}
    return payload.model_dump(exclude_none=True)

@router.get("")
async def list_rules(db: Session = Depends(get_db)):
    return {"rules": [r.to_dict() for r in SensorRuleStore(db).get_all_sensor_rules()]}

@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_rule(payload: SensorRuleCreate, db: Session = Depends(get_db)):
    store = SensorRuleStore(db)
    if payload.id and store.get_rule(payload.id):
        raise HTTPException(status_code=400, detail="Rule id already exists")

    rule = store.create_sensor_rule(SensorRule(
        id=payload.id,
        name=payload.name,
        type=payload.type,
        sensors=list(payload.sensors),
        operator=payload.operator if payload.type == "2-sensor" else None,
        action_type=payload.action_type,
        action_shape=payload.action_shape,
        action_coordinates=payload.action_coordinates,
        action_radius=payload.action_radius,
        enabled=payload.enabled,
        rule_metadata=_metadata(payload.metadata),
    ))
    logger.info(f"Sensor rule {rule.id} ({rule.name}) created")
    return {"rule": rule.to_dict()}

@router.patch("", dependencies=[Depends(require_admin)])
async def update_rule(payload: SensorRuleUpdate, id: str = Query(...), db: Session = Depends(get_db)):
    store = SensorRuleStore(db)
    rule = store.get_rule(id)
    if not rule:
        raise HTTPException(status_code=404, detail="Rule not found")

    updates = payload.model_dump(exclude_unset=True)
    rule_type = updates.get("type", rule.type)
    sensors = updates.get("sensors", rule.sensors) or []
    operator = updates.get("operator", rule.operator)
    try:
        check_rule_shape(rule_type, sensors, operator)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if "metadata" in updates:
        rule.rule_metadata = _metadata(payload.metadata)
        updates.pop("metadata")
    for key, value in updates.items():
        setattr(rule, key, value)
    if rule_type == "1-sensor":
        rule.operator = None

    rule = store.save(rule)
    return {"rule": rule.to_dict()}

@router.post("/{rule_id}/toggle", dependencies=[Depends(require_admin)])
async def toggle_rule(rule_id: str, db: Session = Depends(get_db)):
    rule = SensorRuleStore(db).toggle_sensor_rule(rule_id)
    if not rule:
        raise HTTPException(status_code=404, detail="Rule not found")
    logger.info(f"Sensor rule {rule.id} {'enabled' if rule.enabled else 'disabled'}")
    return {"rule": rule.to_dict()}

@router.delete("", dependencies=[Depends(require_admin)])
async def delete_rule(id: str = Query(...), db: Session = Depends(get_db)):
    if not SensorRuleStore(db).delete_sensor_rule(id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"message": "Rule deleted"}
