# app/routers/sensors.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session
import logging

from app.database import get_db, now_ms
from app.dependencies import get_dispatcher, get_rule_engine, require_admin
from app.models.sensor import Sensor
from app.schemas.messages import SENSOR_CREATED, SENSOR_DELETED
from app.schemas.sensor import SensorCreate, SensorDataIn
from app.services.broadcast import BroadcastDispatcher
from app.services.rule_engine import RuleEngine, SensorReading, threshold_exceeded
from app.services.stores import SensorStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sensors", tags=["sensors"])
data_router = APIRouter(prefix="/api/sensor-data", tags=["sensor-data"])

# ---------- Sensors ----------
@router.get("")
async def list_sensors(db: Session = Depends(get_db)):
    return {"sensors": [s.to_dict() for s in SensorStore(db).get_all_sensors()]}

@router.post("", status_code=201, dependencies=[Depends(require_admin)])
async def create_sensor(
    payload: SensorCreate,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    store = SensorStore(db)
    if payload.id and store.get_sensor(payload.id):
        raise HTTPException(status_code=400, detail="Sensor id already exists")

    sensor = store.create_sensor(Sensor(
        id=payload.id,
        name=payload.name,
        location=list(payload.location) if payload.location else None,
        type=payload.type,
        threshold=payload.threshold,
        action_type=payload.action_type,
        action_target=payload.action_target,
    ))
    logger.info(f"Sensor {sensor.id} ({sensor.name}) created")
    await dispatcher.broadcast(SENSOR_CREATED, sensor.to_dict())
    return {"sensor": sensor.to_dict()}

@router.delete("", dependencies=[Depends(require_admin)])
async def delete_sensor(
    id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    if not SensorStore(db).delete_sensor(id):
        raise HTTPException(status_code=404, detail="Sensor not found")
    await dispatcher.broadcast(SENSOR_DELETED, {"sensorId": id})
    return {"message": "Sensor deleted"}

# ---------- Ingest: readings pushed by field sensors ----------
@data_router.post("", status_code=201)
async def ingest_sensor_data(
    payload: SensorDataIn,
    response: Response,
    db: Session = Depends(get_db),
    rule_engine: RuleEngine = Depends(get_rule_engine),
):
    """Store a reading and run the automation rules against it"""
    store = SensorStore(db)
    timestamp = payload.timestamp if payload.timestamp is not None else now_ms()
    extras = payload.model_dump(by_alias=True, include={"water_level", "temperature", "humidity"}, exclude_none=True)

    try:
        data_id = store.insert_sensor_data(payload.sensor_id, payload.value, timestamp, extras)
        sensor = store.get_sensor(payload.sensor_id)
    except Exception as e:
        logger.exception(f"Failed to insert sensor data: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to insert sensor data")

    if not sensor:
        response.status_code = 202
        return {
            "warning": f"Sensor {payload.sensor_id} not found in system. Data saved but automation not triggered.",
            "id": data_id,
        }

    reading = SensorReading(
        sensor_id=sensor.id,
        value=payload.value,
        timestamp=timestamp,
        sensor_name=sensor.name,
        sensor_type=sensor.type,
    )
    try:
        result = await rule_engine.check_and_execute_rules(reading, sensor, db)
    except Exception as e:
        logger.exception(f"Automation failed for sensor {sensor.id}: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to run automation rules")

    automation = result.to_dict()
    automation["message"] = (
        f"Triggered {result.rules_triggered} automation rule(s)"
        if result.rules_triggered > 0 else "No rules triggered"
    )
    return {
        "success": True,
        "dataId": data_id,
        "sensor": {
            "id": sensor.id,
            "name": sensor.name,
            "threshold": sensor.threshold,
            "currentValue": payload.value,
        },
        "thresholdExceeded": threshold_exceeded(payload.value, sensor.threshold),
        "automation": automation,
    }

@data_router.get("")
async def recent_sensor_data(limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db)):
    points = SensorStore(db).get_recent_sensor_data(limit)
    return {"data": [p.to_dict() for p in points]}

@data_router.get("/latest")
async def latest_readings(rule_engine: RuleEngine = Depends(get_rule_engine)):
    """Latest reading per sensor as seen by the rule engine"""
    return {"readings": {sid: r.to_dict() for sid, r in rule_engine.latest_readings().items()}}

@data_router.get("/{sensor_id}")
async def sensor_history(sensor_id: str, limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db)):
    points = SensorStore(db).get_recent_sensor_data(limit, sensor_id=sensor_id)
    return {"sensorId": sensor_id, "data": [p.to_dict() for p in points]}
