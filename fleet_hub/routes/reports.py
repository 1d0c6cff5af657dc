from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth.security import get_actor
from ..db import get_db
from ..models.models import VehicleTrackingReport
from ..schemas.reports import (
    DashboardResponse,
    MechanicActivityResponse,
    ReportPeriod,
    TrackingReportCreate,
    TrackingReportGenerate,
    TrackingReportGenerateResponse,
    TrackingReportResponse,
)
from ..services import reports
from ..services.time_rules import utcnow
from ..services.vehicles import get_vehicle
from .deps import get_org, default_org


router = APIRouter(prefix="/api", tags=["reports"])


# ---------- DASHBOARD ----------
@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(org: str = Depends(get_org), db: Session = Depends(get_db)):
    """Fleet status counts, open work orders and active trips"""
    return reports.dashboard(db, org)


@router.get("/mechanic-activity", response_model=MechanicActivityResponse)
def get_mechanic_activity(
    org: str = Depends(get_org),
    period: ReportPeriod = ReportPeriod.daily,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    mechanic: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return reports.mechanic_activity(db, org, period.value, date_from, date_to, mechanic)


# ---------- TRACKING REPORTS ----------
@router.get("/tracking-reports", response_model=List[TrackingReportResponse])
def list_tracking_reports(
    org: str = Depends(get_org),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return reports.list_tracking_reports(db, org, vehicle_id, date_from, date_to, limit)


@router.post("/tracking-reports/generate", response_model=TrackingReportGenerateResponse)
def generate_tracking_reports(
    request: Request,
    payload: Optional[TrackingReportGenerate] = None,
    db: Session = Depends(get_db),
    _actor=Depends(get_actor),
):
    """Derive per-vehicle reports from trips for every actively tracked vehicle"""
    payload = payload or TrackingReportGenerate()
    result = reports.generate_tracking_reports(
        db,
        default_org(request, payload.organization_id),
        report_date=payload.report_date,
        period_start=payload.period_start,
        period_end=payload.period_end,
        vehicle_id=payload.vehicle_id,
    )
    db.commit()
    return result


@router.get("/vehicles/{vehicle_id}/tracking-reports", response_model=List[TrackingReportResponse])
def vehicle_tracking_reports(
    vehicle_id: str,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    limit: int = Query(90, ge=1, le=365),
    db: Session = Depends(get_db),
):
    get_vehicle(db, vehicle_id)
    return reports.list_tracking_reports(db, None, vehicle_id, date_from, date_to, limit)


@router.post("/vehicles/{vehicle_id}/tracking-reports", response_model=TrackingReportResponse, status_code=201)
def create_tracking_report(
    vehicle_id: str,
    payload: TrackingReportCreate,
    db: Session = Depends(get_db),
    _actor=Depends(get_actor),
):
    """Record a tracking report by hand (e.g. from a vendor export)"""
    vehicle = get_vehicle(db, vehicle_id)
    now = utcnow()
    report = VehicleTrackingReport(
        organization_id=vehicle.organization_id,
        vehicle_id=vehicle.id,
        generated_at=now,
        created_at=now,
        **payload.model_dump(),
    )
    db.add(report)
    db.commit()
    return reports.with_vehicle(report, vehicle)
