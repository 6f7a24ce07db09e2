from sqlalchemy import Column, String, Boolean, Float, JSON, BigInteger
from app.database import Base, now_ms

class SensorRule(Base):
    __tablename__ = "sensor_rules"
    
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # "1-sensor", "2-sensor"
    sensors = Column(JSON, nullable=False, default=list)  # sensor ids
    operator = Column(String)  # "AND", "OR" (2-sensor only)
    action_type = Column(String, nullable=False)  # "flood", "outage"
    action_shape = Column(String, nullable=False)  # "circle", "line"
    action_coordinates = Column(JSON)
    action_radius = Column(Float)
    enabled = Column(Boolean, default=True, index=True)
    # "metadata" is reserved on declarative classes
    rule_metadata = Column("metadata", JSON, default=dict)  # {condition, points}
    created_at = Column(BigInteger, default=now_ms)

    @property
    def condition(self) -> str:
        return (self.rule_metadata or {}).get("condition") or "active"

    @property
    def points(self):
        return (self.rule_metadata or {}).get("points") or []

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "sensors": list(self.sensors or []),
            "operator": self.operator,
            "actionType": self.action_type,
            "actionShape": self.action_shape,
            "actionCoordinates": self.action_coordinates,
            "actionRadius": self.action_radius,
            "enabled": bool(self.enabled),
            "metadata": self.rule_metadata or {},
            "createdAt": self.created_at,
        }
