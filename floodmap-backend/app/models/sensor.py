from sqlalchemy import Column, Integer, String, Float, JSON, BigInteger
from app.database import Base, now_ms

class Sensor(Base):
    __tablename__ = "sensors"
    
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    location = Column(JSON)  # [lng, lat]
    type = Column(String, nullable=False)  # "water_level", "temperature", "humidity"
    threshold = Column(Float, nullable=False)
    action_type = Column(String, nullable=False)  # "flood", "outage"
    action_target = Column(String)  # zone/route id to activate
    created_at = Column(BigInteger, default=now_ms)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "type": self.type,
            "threshold": self.threshold,
            "actionType": self.action_type,
            "actionTarget": self.action_target,
            "createdAt": self.created_at,
        }

class SensorDataPoint(Base):
    __tablename__ = "sensor_data"
    
    id = Column(Integer, primary_key=True, index=True)
    sensor_id = Column(String, index=True, nullable=False)
    value = Column(Float, nullable=False)
    timestamp = Column(BigInteger, index=True, nullable=False)
    data = Column(JSON, default=dict)  # waterLevel, temperature, humidity extras

    def to_dict(self):
        return {
            "id": self.id,
            "sensorId": self.sensor_id,
            "value": self.value,
            "timestamp": self.timestamp,
            **(self.data or {}),
        }
