from sqlalchemy import Column, String, JSON, BigInteger, Text, Boolean
from app.database import Base, now_ms

class UserReport(Base):
    __tablename__ = "user_reports"
    
    id = Column(String, primary_key=True, index=True)
    type = Column(String, nullable=False, index=True)  # "flood", "outage", "other"
    location = Column(JSON, nullable=False)  # [lng, lat]
    description = Column(Text, nullable=False)
    severity = Column(String, nullable=False)  # "low", "medium", "high"
    reporter_name = Column(String)
    reporter_contact = Column(String)
    status = Column(String, default="new", index=True)  # "new", "investigating", "resolved"
    images = Column(JSON, default=list)
    votes = Column(JSON, default=dict)  # user id -> "up" | "down"
    zone_created = Column(Boolean, default=False)
    admin_approved = Column(Boolean, default=False)
    zone_id = Column(String)  # zone promoted from this report
    created_at = Column(BigInteger, default=now_ms, index=True)
    updated_at = Column(BigInteger)

    @property
    def vote_score(self) -> int:
        votes = (self.votes or {}).values()
        return sum(1 for v in votes if v == "up") - sum(1 for v in votes if v == "down")

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "location": self.location,
            "description": self.description,
            "severity": self.severity,
            "reporterName": self.reporter_name,
            "reporterContact": self.reporter_contact,
            "status": self.status,
            "images": self.images or [],
            "voteScore": self.vote_score,
            "zoneCreated": bool(self.zone_created),
            "adminApproved": bool(self.admin_approved),
            "zoneId": self.zone_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
