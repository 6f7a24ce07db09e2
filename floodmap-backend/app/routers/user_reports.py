from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import get_db
from app.dependencies import get_dispatcher, require_admin
from app.models.user_report import UserReport
from app.schemas.messages import USER_REPORT_CREATED
from app.schemas.user_report import UserReportCreate, ReportStatusUpdate, ReportVote, ReportApprove
from app.services.broadcast import BroadcastDispatcher
from app.services.report_zones import VOTE_THRESHOLD, promote_report
from app.services.stores import UserReportStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/user-reports", tags=["user-reports"])

@router.post("", status_code=201)
async def create_report(
    payload: UserReportCreate,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Citizen report of a flood or outage"""
    try:
        report = UserReportStore(db).create_user_report(UserReport(
            type=payload.type,
            location=list(payload.location),
            description=payload.description,
            severity=payload.severity,
            reporter_name=payload.reporter_name,
            reporter_contact=payload.reporter_contact,
            images=list(payload.images),
        ))
    except Exception as e:
        logger.exception(f"Failed to create user report: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create report")

    await dispatcher.broadcast(USER_REPORT_CREATED, report.to_dict())
    return {"success": True, "report": report.to_dict()}

@router.get("")
async def list_reports(limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db)):
    reports = UserReportStore(db).get_recent_user_reports(limit)
    return {"reports": [r.to_dict() for r in reports]}

@router.patch("", dependencies=[Depends(require_admin)])
async def update_report_status(payload: ReportStatusUpdate, db: Session = Depends(get_db)):
    report = UserReportStore(db).update_report_status(payload.report_id, payload.status)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return {"success": True, "report": report.to_dict()}

@router.delete("", dependencies=[Depends(require_admin)])
async def delete_report(id: str = Query(...), db: Session = Depends(get_db)):
    if not UserReportStore(db).delete_user_report(id):
        raise HTTPException(status_code=404, detail="Report not found")
    return {"success": True}

@router.post("/vote")
async def vote_on_report(
    payload: ReportVote,
    user_id: Optional[str] = Query(None, alias="userId"),
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Up/down vote a report; enough upvotes promote it to a zone once"""
    voter = user_id or x_user_id
    if not voter:
        raise HTTPException(status_code=401, detail="userId required to vote")

    store = UserReportStore(db)
    vote_type = None if payload.vote_type == "remove" else payload.vote_type
    report = store.vote_on_report(payload.report_id, voter, vote_type)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    if report.vote_score >= VOTE_THRESHOLD and not report.zone_created and not report.admin_approved:
        try:
            await promote_report(report, db, dispatcher)
        except Exception as e:
            logger.exception(f"Failed to auto-create zone for report {report.id}: {e}")
            db.rollback()
            report = store.get_report(payload.report_id)

    return {
        "success": True,
        "voteScore": report.vote_score,
        "zoneCreated": bool(report.zone_created),
        "zoneId": report.zone_id,
    }

@router.post("/approve", dependencies=[Depends(require_admin)])
async def approve_report(
    payload: ReportApprove,
    db: Session = Depends(get_db),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    """Admin approval turns a report into a zone; a second approval is a no-op"""
    report = UserReportStore(db).get_report(payload.report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    if report.zone_created:
        return {"success": False, "message": "Zone already created for this report", "zoneId": report.zone_id}

    zone = await promote_report(report, db, dispatcher, approved=True)
    return {"success": True, "message": "Zone created successfully", "zone": zone.to_dict()}
