from sqlalchemy import Column, String, JSON, BigInteger
from app.database import Base, now_ms

class Camera(Base):
    __tablename__ = "cameras"
    
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    location = Column(JSON)  # [lng, lat]
    stream_url = Column(String)
    status = Column(String, default="offline")  # "online", "offline"
    counts = Column(JSON, default=dict)  # per-class detections in the last frame
    unique_counts = Column(JSON, default=dict)  # tracked unique objects
    last_detection_at = Column(BigInteger)
    webrtc = Column(JSON, default=dict)  # signaling status reported by the producer
    created_at = Column(BigInteger, default=now_ms)
    updated_at = Column(BigInteger, default=now_ms, onupdate=now_ms)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "streamUrl": self.stream_url,
            "status": self.status,
            "counts": self.counts or {},
            "uniqueCounts": self.unique_counts or {},
            "lastDetectionAt": self.last_detection_at,
            "webrtc": self.webrtc or {},
            "createdAt": self.created_at,
        }
