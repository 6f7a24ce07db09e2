"""
Persistence collaborators used by the routers, the rule engine and the socket handlers.

Each store wraps a SQLAlchemy session; commits happen inside the store so a
caller never sees a half-written record.
"""
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
import logging
import secrets

from app.database import now_ms
from app.models.zone import Zone
from app.models.sensor import Sensor, SensorDataPoint
from app.models.sensor_rule import SensorRule
from app.models.camera import Camera
from app.models.user_report import UserReport
from app.models.prediction import Prediction

logger = logging.getLogger(__name__)

def generate_id(prefix: str) -> str:
    return f"{prefix}-{now_ms()}-{secrets.token_hex(5)[:9]}"

class SensorStore:
    def __init__(self, db: Session):
        self.db = db

    def get_all_sensors(self) -> List[Sensor]:
        return self.db.query(Sensor).order_by(Sensor.created_at.asc()).all()

    def get_sensor(self, sensor_id: str) -> Optional[Sensor]:
        return self.db.query(Sensor).filter(Sensor.id == sensor_id).first()

    def create_sensor(self, sensor: Sensor) -> Sensor:
        if not sensor.id:
            sensor.id = generate_id("sensor")
        sensor.created_at = now_ms()
        self.db.add(sensor)
        self.db.commit()
        self.db.refresh(sensor)
        return sensor

    def delete_sensor(self, sensor_id: str) -> bool:
        deleted = self.db.query(Sensor).filter(Sensor.id == sensor_id).delete()
        self.db.commit()
        return deleted > 0

    def insert_sensor_data(self, sensor_id: str, value: float, timestamp: int, data: Optional[Dict[str, Any]] = None) -> int:
        point = SensorDataPoint(sensor_id=sensor_id, value=value, timestamp=timestamp, data=data or {})
        self.db.add(point)
        self.db.commit()
        self.db.refresh(point)
        return point.id

    def get_recent_sensor_data(self, limit: int = 100, sensor_id: Optional[str] = None) -> List[SensorDataPoint]:
        q = self.db.query(SensorDataPoint)
        if sensor_id is not None:
            q = q.filter(SensorDataPoint.sensor_id == sensor_id)
        return q.order_by(SensorDataPoint.timestamp.desc(), SensorDataPoint.id.desc()).limit(limit).all()

class SensorRuleStore:
    def __init__(self, db: Session):
        self.db = db

    def get_all_sensor_rules(self) -> List[SensorRule]:
        return self.db.query(SensorRule).order_by(SensorRule.created_at.asc()).all()

    def get_enabled_sensor_rules(self) -> List[SensorRule]:
        return [r for r in self.get_all_sensor_rules() if r.enabled]

    def get_rule(self, rule_id: str) -> Optional[SensorRule]:
        return self.db.query(SensorRule).filter(SensorRule.id == rule_id).first()

    def create_sensor_rule(self, rule: SensorRule) -> SensorRule:
        if not rule.id:
            rule.id = generate_id("rule")
        rule.created_at = now_ms()
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def save(self, rule: SensorRule) -> SensorRule:
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def delete_sensor_rule(self, rule_id: str) -> bool:
        deleted = self.db.query(SensorRule).filter(SensorRule.id == rule_id).delete()
        self.db.commit()
        return deleted > 0

    def toggle_sensor_rule(self, rule_id: str) -> Optional[SensorRule]:
        rule = self.get_rule(rule_id)
        if rule:
            rule.enabled = not rule.enabled
            self.save(rule)
        return rule

class ZoneStore:
    def __init__(self, db: Session):
        self.db = db

    def get_all_zones(self, zone_type: Optional[str] = None) -> List[Zone]:
        q = self.db.query(Zone)
        if zone_type:
            q = q.filter(Zone.type == zone_type)
        return q.order_by(Zone.created_at.desc()).all()

    def get_zone(self, zone_id: str) -> Optional[Zone]:
        return self.db.query(Zone).filter(Zone.id == zone_id).first()

    def create_zone(self, zone: Zone) -> Zone:
        now = now_ms()
        if not zone.id:
            zone.id = generate_id("zone")
        if zone.created_at is None:
            zone.created_at = now
        zone.updated_at = now
        if zone.risk_level is None:
            zone.risk_level = 50
        self.db.add(zone)
        self.db.commit()
        self.db.refresh(zone)
        return zone

    def update_zone(self, zone_id: str, updates: Dict[str, Any]) -> Optional[Zone]:
        zone = self.get_zone(zone_id)
        if not zone:
            return None
        for key, value in updates.items():
            setattr(zone, key, value)
        zone.updated_at = now_ms()
        self.db.commit()
        self.db.refresh(zone)
        return zone

    def delete_zone(self, zone_id: str) -> bool:
        deleted = self.db.query(Zone).filter(Zone.id == zone_id).delete()
        self.db.commit()
        return deleted > 0

    def delete_all_zones(self, zone_type: Optional[str] = None) -> int:
        q = self.db.query(Zone)
        if zone_type:
            q = q.filter(Zone.type == zone_type)
        deleted = q.delete()
        self.db.commit()
        return deleted

class CameraStore:
    def __init__(self, db: Session):
        self.db = db

    def get_all_cameras(self) -> List[Camera]:
        return self.db.query(Camera).order_by(Camera.created_at.asc()).all()

    def get_camera_by_id(self, camera_id: str) -> Optional[Camera]:
        return self.db.query(Camera).filter(Camera.id == camera_id).first()

    def create_camera(self, camera: Camera) -> Camera:
        camera.created_at = now_ms()
        self.db.add(camera)
        self.db.commit()
        self.db.refresh(camera)
        return camera

    def update_camera_counts(self, camera_id: str, counts: Dict[str, int], unique_counts: Dict[str, int]) -> Optional[Camera]:
        camera = self.get_camera_by_id(camera_id)
        if not camera:
            return None
        camera.counts = dict(counts)
        camera.unique_counts = dict(unique_counts)
        camera.status = "online"
        camera.last_detection_at = now_ms()
        self.db.commit()
        return camera

    def update_camera_webrtc(self, camera_id: str, webrtc: Dict[str, Any]) -> Optional[Camera]:
        camera = self.get_camera_by_id(camera_id)
        if not camera:
            return None
        camera.webrtc = {**(camera.webrtc or {}), **webrtc}
        self.db.commit()
        return camera

class UserReportStore:
    def __init__(self, db: Session):
        self.db = db

    def create_user_report(self, report: UserReport) -> UserReport:
        report.id = generate_id("report")
        report.status = "new"
        report.created_at = now_ms()
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)
        return report

    def get_recent_user_reports(self, limit: int = 100) -> List[UserReport]:
        return self.db.query(UserReport).order_by(UserReport.created_at.desc()).limit(limit).all()

    def get_report(self, report_id: str) -> Optional[UserReport]:
        return self.db.query(UserReport).filter(UserReport.id == report_id).first()

    def vote_on_report(self, report_id: str, user_id: str, vote_type: Optional[str]) -> Optional[UserReport]:
        """Record one vote per user; vote_type None removes the user's vote"""
        report = self.get_report(report_id)
        if not report:
            return None
        votes = dict(report.votes or {})
        if vote_type is None:
            votes.pop(user_id, None)
        else:
            votes[user_id] = vote_type
        # JSON columns only persist on reassignment
        report.votes = votes
        report.updated_at = now_ms()
        self.db.commit()
        return report

    def mark_zone_created(self, report: UserReport, zone_id: str, admin_approved: bool = False) -> UserReport:
        report.zone_created = True
        report.zone_id = zone_id
        if admin_approved:
            report.admin_approved = True
        report.updated_at = now_ms()
        self.db.commit()
        return report

    def update_report_status(self, report_id: str, status: str) -> Optional[UserReport]:
        report = self.get_report(report_id)
        if not report:
            return None
        report.status = status
        report.updated_at = now_ms()
        self.db.commit()
        return report

    def delete_user_report(self, report_id: str) -> bool:
        deleted = self.db.query(UserReport).filter(UserReport.id == report_id).delete()
        self.db.commit()
        return deleted > 0

class PredictionStore:
    def __init__(self, db: Session):
        self.db = db

    def insert_prediction(self, prediction: Prediction) -> Prediction:
        if prediction.timestamp is None:
            prediction.timestamp = now_ms()
        self.db.add(prediction)
        self.db.commit()
        self.db.refresh(prediction)
        return prediction

    def get_active_predictions(self) -> List[Prediction]:
        now = now_ms()
        return (
            self.db.query(Prediction)
            .filter((Prediction.expires_at.is_(None)) | (Prediction.expires_at > now))
            .order_by(Prediction.timestamp.desc())
            .all()
        )

    def delete_expired_predictions(self) -> int:
        deleted = (
            self.db.query(Prediction)
            .filter(Prediction.expires_at.isnot(None), Prediction.expires_at < now_ms())
            .delete()
        )
        self.db.commit()
        if deleted:
            logger.info(f"Deleted {deleted} expired predictions")
        return deleted
