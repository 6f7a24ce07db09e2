from sqlalchemy import Column, Integer, String, Float, JSON, BigInteger
from app.database import Base

class Prediction(Base):
    __tablename__ = "predictions"
    
    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, nullable=False, index=True)  # "flood", "outage"
    location = Column(JSON, nullable=False)  # [lng, lat]
    probability = Column(Float, nullable=False)
    severity = Column(String)  # "low", "medium", "high"
    timestamp = Column(BigInteger, nullable=False, index=True)
    expires_at = Column(BigInteger, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "location": self.location,
            "probability": self.probability,
            "severity": self.severity,
            "timestamp": self.timestamp,
            "expiresAt": self.expires_at,
        }
