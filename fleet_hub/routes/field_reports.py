from typing import List, Optional

import structlog
from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from ..auth.security import get_actor, actor_name, actor_id
from ..db import get_db
from ..models.models import FieldIssueReport, Vehicle, User
from ..schemas.field_reports import (
    ConvertRequest,
    ConvertResponse,
    FieldReportResponse,
    Severity,
)
from ..services import field_reports as report_service
from ..services import media as media_service
from ..services.reports import with_vehicle
from ..services.time_rules import utcnow
from ..services.vehicles import get_vehicle
from ..storage.provider import StorageProvider
from .deps import get_org, get_storage


router = APIRouter(prefix="/api/field-reports", tags=["field-reports"])
logger = structlog.get_logger()


def _report_out(db: Session, report: FieldIssueReport, vehicle: Optional[Vehicle] = None) -> dict:
    data = with_vehicle(report, vehicle or db.get(Vehicle, report.vehicle_id))
    data["photos"] = media_service.list_media(db, "field_report", report.id, newest_first=False)
    return data


@router.get("", response_model=List[FieldReportResponse])
def list_field_reports(
    org: str = Depends(get_org),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Newest reports first, each with its photos"""
    q = (
        db.query(FieldIssueReport, Vehicle)
        .join(Vehicle, FieldIssueReport.vehicle_id == Vehicle.id)
        .filter(FieldIssueReport.organization_id == org)
    )
    if status:
        q = q.filter(FieldIssueReport.status == status)
    rows = q.order_by(FieldIssueReport.created_at.desc()).limit(100).all()
    return [_report_out(db, r, v) for r, v in rows]


@router.post("", response_model=FieldReportResponse, status_code=201)
def submit_field_report(
    request: Request,
    vehicle_id: str = Form(..., alias="vehicleId", min_length=1),
    title: str = Form(..., min_length=1),
    description: str = Form(""),
    severity: Severity = Form(Severity.medium),
    location: str = Form(""),
    odometer: Optional[int] = Form(None, ge=0),
    is_driveable: bool = Form(True, alias="isDriveable"),
    reported_by_id: str = Form("", alias="reportedById"),
    reported_by_name: str = Form("", alias="reportedByName"),
    photos: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    actor: Optional[User] = Depends(get_actor),
):
    """Driver problem report with optional photos (multipart form)"""
    vehicle = get_vehicle(db, vehicle_id)
    report = FieldIssueReport(
        organization_id=vehicle.organization_id,
        vehicle_id=vehicle.id,
        reported_by_id=actor_id(actor, reported_by_id),
        reported_by_name=actor_name(actor, reported_by_name),
        title=title.strip(),
        description=description,
        severity=severity.value,
        location=location,
        odometer=odometer,
        is_driveable=is_driveable,
        status="open",
        created_at=utcnow(),
    )
    db.add(report)
    db.flush()
    stored = media_service.store_uploads(
        db, storage, photos, "field_report", report.id,
        max_bytes=request.app.state.settings.max_upload_bytes,
        category="damage",
        uploaded_by_id=report.reported_by_id,
        uploaded_by_name=report.reported_by_name,
    )
    report.photo_count = len(stored)
    media_service.commit_with_files(db, storage, stored)
    logger.info(
        "field_report_submitted",
        report_id=report.id,
        vehicle_id=vehicle.id,
        severity=report.severity,
        photos=len(stored),
    )
    return _report_out(db, report, vehicle)


@router.post("/{report_id}/convert", response_model=ConvertResponse)
def convert_field_report(
    report_id: str,
    payload: Optional[ConvertRequest] = Body(None),
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    """Turn a report into a corrective work order (once)"""
    payload = payload or ConvertRequest()
    report = report_service.get_report(db, report_id)
    wo = report_service.convert_to_work_order(
        db,
        report,
        assigned_to=payload.assigned_to,
        repair_location=payload.repair_location.value,
    )
    db.commit()
    return {"work_order_id": wo.id, "report_id": report.id, "status": report.status}


@router.patch("/{report_id}/resolve", response_model=FieldReportResponse)
def resolve_field_report(
    report_id: str,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    report = report_service.get_report(db, report_id)
    report_service.resolve_report(db, report)
    db.commit()
    return _report_out(db, report)
