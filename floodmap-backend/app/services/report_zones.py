"""
Promotion of citizen reports to map zones, by community votes or admin approval.
"""
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.models.user_report import UserReport
from app.models.zone import Zone
from app.schemas.messages import ZONE_CREATED
from app.services.broadcast import BroadcastDispatcher
from app.services.stores import UserReportStore, ZoneStore, generate_id

logger = logging.getLogger(__name__)

VOTE_THRESHOLD = 3
REPORT_ZONE_RADIUS_M = 500
SEVERITY_RISK = {"high": 90, "medium": 60, "low": 40}

def build_report_zone(report: UserReport, approved: bool) -> Zone:
    summary = report.description[:50]
    return Zone(
        id=generate_id("zone-admin" if approved else "zone-vote"),
        type="flood" if report.type == "flood" else "outage",
        shape="circle",
        center=list(report.location),
        radius=REPORT_ZONE_RADIUS_M,
        risk_level=SEVERITY_RISK.get(report.severity, 40),
        title=f"Admin: {summary}" if approved else f"Community report: {summary}",
        description=(
            "Approved by an administrator" if approved
            else f"Created from a report with {report.vote_score} upvotes"
        ),
    )

async def promote_report(
    report: UserReport,
    db: Session,
    dispatcher: Optional[BroadcastDispatcher],
    approved: bool = False,
) -> Optional[Zone]:
    """Create the report's zone once; returns None when it already has one"""
    if report.zone_created:
        return None

    zone = ZoneStore(db).create_zone(build_report_zone(report, approved))
    UserReportStore(db).mark_zone_created(report, zone.id, admin_approved=approved)
    logger.info(f"Report {report.id} promoted to zone {zone.id} ({'admin' if approved else 'votes'})")

    if dispatcher:
        await dispatcher.broadcast(ZONE_CREATED, zone.to_dict())
    return zone
