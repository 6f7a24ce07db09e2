from sqlalchemy import Column, Integer, String, Float, JSON, BigInteger, Text
from app.database import Base, now_ms

class Zone(Base):
    __tablename__ = "zones"
    
    id = Column(String, primary_key=True, index=True)
    type = Column(String, nullable=False, index=True)  # "flood", "outage"
    shape = Column(String, nullable=False)  # "circle", "line"
    center = Column(JSON)  # [lng, lat]
    radius = Column(Float)  # meters
    coordinates = Column(JSON)  # [[lng, lat], ...]
    risk_level = Column(Integer, default=50)
    title = Column(String)
    description = Column(Text)
    automated_from = Column(String, index=True)  # rule id
    triggered_by = Column(String)  # sensor id
    created_at = Column(BigInteger, default=now_ms, index=True)
    updated_at = Column(BigInteger, default=now_ms, onupdate=now_ms)

    @property
    def is_automated(self) -> bool:
        return self.automated_from is not None

    def to_dict(self):
        data = {
            "id": self.id,
            "type": self.type,
            "shape": self.shape,
            "riskLevel": self.risk_level,
            "title": self.title,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.shape == "circle":
            data["center"] = self.center
            data["radius"] = self.radius
        else:
            data["coordinates"] = self.coordinates
        if self.automated_from:
            data["automatedFrom"] = self.automated_from
            data["triggeredBy"] = self.triggered_by
        return data
