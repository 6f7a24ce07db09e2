"""
Sensor-driven automation: turns a new sensor reading into automated zones.
"""
from dataclasses import dataclass, field
from sqlalchemy.orm import Session
from typing import Callable, Dict, List, Optional
import logging
import secrets

from app.database import now_ms
from app.models.sensor import Sensor
from app.models.sensor_rule import SensorRule
from app.models.zone import Zone
from app.schemas.messages import ZONE_CREATED, ZONE_DELETED
from app.services.broadcast import BroadcastDispatcher
from app.services.stores import SensorStore, SensorRuleStore, ZoneStore

logger = logging.getLogger(__name__)

DEDUP_WINDOW_MS = 5 * 60 * 1000
DEFAULT_RADIUS_M = 500
AUTOMATED_RISK_LEVEL = 80
DEFAULT_MAX_AGE_MS = 60 * 60 * 1000

@dataclass
class SensorReading:
    sensor_id: str
    value: float
    timestamp: int
    sensor_name: str
    sensor_type: str

    def to_dict(self):
        return {
            "sensorId": self.sensor_id,
            "value": self.value,
            "timestamp": self.timestamp,
            "sensorName": self.sensor_name,
            "sensorType": self.sensor_type,
        }

@dataclass
class ExecutionResult:
    rules_checked: int = 0
    rules_triggered: int = 0
    zones_created: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "rulesChecked": self.rules_checked,
            "rulesTriggered": self.rules_triggered,
            "zonesCreated": list(self.zones_created),
        }

def threshold_exceeded(value: float, threshold: float) -> bool:
    return value > threshold

def combine(operator: Optional[str], first: bool, second: bool) -> bool:
    if operator == "AND":
        return first and second
    if operator == "OR":
        return first or second
    logger.warning(f"Unknown rule operator: {operator}")
    return False

class RuleEngine:
    """
    Holds the latest reading per sensor and evaluates enabled rules against it.

    The reading map is owned by the engine instance; create one engine per
    process (or per test) rather than sharing module state.
    """

    def __init__(self, dispatcher: Optional[BroadcastDispatcher] = None, clock: Callable[[], int] = now_ms):
        self.dispatcher = dispatcher
        self.clock = clock
        self._latest: Dict[str, SensorReading] = {}

    def update_sensor_reading(self, reading: SensorReading):
        self._latest[reading.sensor_id] = reading

    def get_latest_reading(self, sensor_id: str) -> Optional[SensorReading]:
        return self._latest.get(sensor_id)

    def latest_readings(self) -> Dict[str, SensorReading]:
        return dict(self._latest)

    async def check_and_execute_rules(self, reading: SensorReading, sensor: Sensor, db: Session) -> ExecutionResult:
        """
        Record the reading, evaluate every enabled rule and create zones for
        the ones that fire.

        Store errors propagate to the caller; the reading stays recorded.
        """
        self.update_sensor_reading(reading)

        result = ExecutionResult()
        store = SensorRuleStore(db)
        rules = store.get_enabled_sensor_rules()

        for rule_id in [r.id for r in rules]:
            # re-read after every await
            rule = store.get_rule(rule_id)
            if rule is None or not rule.enabled:
                logger.info(f"Rule {rule_id} was removed or disabled mid-evaluation, skipped")
                continue

            result.rules_checked += 1

            triggered = False
            try:
                triggered = self.evaluate_rule(rule, reading, sensor, db)
            except (TypeError, ValueError) as e:
                logger.warning(f"Rule {rule.id} ({rule.name}) could not be evaluated: {e}")

            if not triggered:
                continue

            result.rules_triggered += 1
            logger.info(f"Rule {rule.id} ({rule.name}) triggered by {reading.sensor_id}={reading.value}")

            zone_id = await self.create_automated_zone(rule, reading, db)
            if zone_id:
                result.zones_created.append(zone_id)

        return result

    def evaluate_rule(self, rule: SensorRule, reading: SensorReading, sensor: Sensor, db: Session) -> bool:
        sensor_ids = list(rule.sensors or [])

        if rule.type == "1-sensor":
            if reading.sensor_id not in sensor_ids:
                return False
            exceeded = threshold_exceeded(reading.value, sensor.threshold)
            condition = rule.condition
            if condition == "active":
                return exceeded
            if condition == "inactive":
                return not exceeded
            logger.warning(f"Rule {rule.id} has unknown condition: {condition}")
            return False

        if rule.type == "2-sensor":
            if len(sensor_ids) != 2:
                logger.warning(f"2-sensor rule {rule.id} references {len(sensor_ids)} sensor(s), skipped")
                return False

            first = self.get_latest_reading(sensor_ids[0])
            second = self.get_latest_reading(sensor_ids[1])
            if first is None or second is None:
                return False

            store = SensorStore(db)
            first_sensor = store.get_sensor(sensor_ids[0])
            second_sensor = store.get_sensor(sensor_ids[1])
            if first_sensor is None or second_sensor is None:
                logger.warning(f"Rule {rule.id} references a sensor that no longer exists")
                return False

            return combine(
                rule.operator,
                threshold_exceeded(first.value, first_sensor.threshold),
                threshold_exceeded(second.value, second_sensor.threshold),
            )

        logger.warning(f"Rule {rule.id} has unknown type: {rule.type}")
        return False

    async def create_automated_zone(self, rule: SensorRule, reading: SensorReading, db: Session) -> Optional[str]:
        """Create the rule's zone, or return the id of one it created within the dedup window"""
        zones = ZoneStore(db)
        now = self.clock()

        for zone in zones.get_all_zones():
            if zone.automated_from == rule.id and zone.created_at and now - zone.created_at < DEDUP_WINDOW_MS:
                logger.info(f"Zone {zone.id} from rule {rule.id} is recent, skipping duplicate")
                return zone.id

        zone = Zone(
            id=f"auto-zone-{now}-{secrets.token_hex(5)[:9]}",
            type=rule.action_type,
            shape=rule.action_shape,
            title=f"Automated: {rule.name}",
            description=f"Created automatically from sensor {reading.sensor_name} (value: {reading.value})",
            risk_level=AUTOMATED_RISK_LEVEL,
            created_at=now,
            automated_from=rule.id,
            triggered_by=reading.sensor_id,
        )

        if rule.action_shape == "circle":
            sensor = SensorStore(db).get_sensor(reading.sensor_id)
            if not sensor or not sensor.location:
                logger.warning(f"Cannot create circle zone for rule {rule.id}: sensor {reading.sensor_id} has no location")
                return None
            zone.center = list(sensor.location)
            zone.radius = rule.action_radius or DEFAULT_RADIUS_M
        elif rule.action_shape == "line":
            points = rule.points
            if len(points) < 2:
                logger.warning(f"Cannot create line zone for rule {rule.id}: needs at least 2 points")
                return None
            zone.coordinates = [list(p) for p in points]
        else:
            logger.warning(f"Rule {rule.id} has unknown action shape: {rule.action_shape}")
            return None

        zones.create_zone(zone)
        logger.info(f"Created automated zone {zone.id} from rule {rule.name}")

        if self.dispatcher:
            await self.dispatcher.broadcast(ZONE_CREATED, zone.to_dict())
        return zone.id

    async def cleanup_old_automated_zones(self, db: Session, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> List[str]:
        """Delete automated zones older than max_age_ms; failures are logged, never raised"""
        removed: List[str] = []
        try:
            zones = ZoneStore(db)
            now = self.clock()
            for zone in zones.get_all_zones():
                if zone.automated_from and now - (zone.created_at or 0) >= max_age_ms:
                    if zones.delete_zone(zone.id):
                        removed.append(zone.id)
        except Exception as e:
            logger.exception(f"Failed to clean up automated zones: {e}")
            db.rollback()

        if removed:
            logger.info(f"Cleaned up {len(removed)} old automated zones")
            if self.dispatcher:
                for zone_id in removed:
                    await self.dispatcher.broadcast(ZONE_DELETED, {"zoneId": zone_id})
        return removed
