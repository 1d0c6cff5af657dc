"""
Read-side aggregates: dashboard, cost of ownership, mechanic activity,
tracking reports and the vehicle map.
"""
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import InvalidInputError
from ..models.models import (
    Trip,
    Vehicle,
    VehicleTrackingReport,
    WorkOrder,
    WorkOrderLabor,
)
from .time_rules import today, utcnow, period_window, whole_days_between
from .tracker_client import TrackerClient, is_trackable, site_position, SITE_COORDINATES
from .work_orders import CLOSED_STATUSES, priority_order


logger = structlog.get_logger()


VEHICLE_STATUS_KEYS = OrderedDict([
    ("operational", "operational"),
    ("deployed", "deployed"),
    ("maintenance-hq", "maintenance_hq"),
    ("maintenance-3rdparty", "maintenance_3rd"),
    ("awaiting-parts", "awaiting_parts"),
    ("grounded", "grounded"),
    ("written-off", "written_off"),
])


def with_vehicle(obj, vehicle: Optional[Vehicle]) -> Dict[str, Any]:
    """Row as a dict plus the vehicle_code/make/model columns list views show."""
    data = {c.key: getattr(obj, c.key) for c in obj.__table__.columns}
    data["vehicle_code"] = vehicle.code if vehicle else None
    data["vehicle_make"] = vehicle.make if vehicle else None
    data["vehicle_model"] = vehicle.model if vehicle else None
    return data


# ---------- DASHBOARD ----------

def dashboard(db: Session, org: str) -> Dict[str, Any]:
    stats = {key: 0 for key in VEHICLE_STATUS_KEYS.values()}
    total = 0
    for vehicle_status, in db.query(Vehicle.status).filter(Vehicle.organization_id == org):
        total += 1
        key = VEHICLE_STATUS_KEYS.get(vehicle_status)
        if key:
            stats[key] += 1

    open_filter = (WorkOrder.organization_id == org, WorkOrder.status.notin_(CLOSED_STATUSES))
    open_count = db.query(WorkOrder).filter(*open_filter).count()

    repaired = (
        db.query(WorkOrder.downtime_start, WorkOrder.downtime_end)
        .filter(WorkOrder.organization_id == org, WorkOrder.downtime_end.isnot(None))
        .all()
    )
    avg_repair_days = 0.0
    if repaired:
        days = [(end - start).total_seconds() / 86400 for start, end in repaired]
        avg_repair_days = round(sum(days) / len(days), 1)

    active_trips = (
        db.query(Trip, Vehicle)
        .join(Vehicle, Trip.vehicle_id == Vehicle.id)
        .filter(Trip.organization_id == org, Trip.checkin_at.is_(None))
        .order_by(Trip.checkout_at.desc())
        .all()
    )
    recent = (
        db.query(WorkOrder, Vehicle)
        .join(Vehicle, WorkOrder.vehicle_id == Vehicle.id)
        .filter(*open_filter)
        .order_by(priority_order(), WorkOrder.created_at.desc())
        .limit(20)
        .all()
    )

    return {
        "total_vehicles": total,
        **stats,
        "open_work_orders": open_count,
        "avg_repair_days": avg_repair_days,
        "active_trips": [with_vehicle(t, v) for t, v in active_trips],
        "recent_work_orders": [with_vehicle(wo, v) for wo, v in recent],
    }


# ---------- TOTAL COST OF OWNERSHIP ----------

def vehicle_tco(db: Session, org: str) -> List[Dict[str, Any]]:
    vehicles = db.query(Vehicle).filter(Vehicle.organization_id == org).all()
    orders_by_vehicle: Dict[str, List[WorkOrder]] = {v.id: [] for v in vehicles}
    for wo in db.query(WorkOrder).filter(WorkOrder.vehicle_id.in_(list(orders_by_vehicle))):
        orders_by_vehicle[wo.vehicle_id].append(wo)

    now = utcnow()
    rows = []
    for v in vehicles:
        orders = orders_by_vehicle[v.id]
        downtime = sum(whole_days_between(wo.downtime_start, wo.downtime_end or now) for wo in orders)
        total_cost = sum(wo.total_cost or 0 for wo in orders)
        rows.append({
            "vehicle_id": v.id,
            "vehicle_code": v.code,
            "vehicle_make": v.make,
            "vehicle_model": v.model,
            "parts_cost": sum(wo.parts_cost or 0 for wo in orders),
            "labour_cost": sum(wo.labour_cost or 0 for wo in orders),
            "third_party_cost": sum(wo.third_party_cost or 0 for wo in orders),
            "total_cost": total_cost,
            "work_order_count": len(orders),
            "total_downtime_days": downtime,
            "avg_repair_days": downtime / len(orders) if orders else 0.0,
            "cost_per_day": round(total_cost / downtime, 2) if downtime > 0 else 0.0,
        })
    rows.sort(key=lambda r: r["total_cost"], reverse=True)
    return rows


# ---------- MECHANIC ACTIVITY ----------

def mechanic_activity(
    db: Session,
    org: str,
    period: str = "daily",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    mechanic: Optional[str] = None,
) -> Dict[str, Any]:
    """Labor logged per mechanic over a period window.

    Explicit from/to bounds win over the period; a single bound leaves the
    other at today.
    """
    if date_from is None and date_to is None:
        period_start, period_end = period_window(period)
    else:
        period_start, period_end = date_from or today(), date_to or today()

    q = (
        db.query(WorkOrderLabor, WorkOrder, Vehicle)
        .join(WorkOrder, WorkOrderLabor.work_order_id == WorkOrder.id)
        .join(Vehicle, WorkOrder.vehicle_id == Vehicle.id)
        .filter(
            WorkOrder.organization_id == org,
            WorkOrderLabor.work_date >= period_start,
            WorkOrderLabor.work_date <= period_end,
        )
    )
    if mechanic:
        q = q.filter(WorkOrderLabor.worker_name == mechanic)
    rows = q.order_by(WorkOrderLabor.work_date.desc(), WorkOrderLabor.worker_name.asc()).all()

    summary: Dict[str, Dict[str, Any]] = {}
    daily: Dict[tuple, Dict[str, Any]] = OrderedDict()
    detail = []
    for labor, wo, vehicle in rows:
        s = summary.setdefault(labor.worker_name, {
            "worker_name": labor.worker_name,
            "work_orders": set(),
            "vehicles": set(),
            "total_hours": 0.0,
            "total_cost": 0.0,
            "labor_entries": 0,
            "first_date": labor.work_date,
            "last_date": labor.work_date,
        })
        s["work_orders"].add(wo.id)
        s["vehicles"].add(vehicle.id)
        s["total_hours"] += labor.hours or 0
        s["total_cost"] += (labor.hours or 0) * (labor.rate_per_hour or 0)
        s["labor_entries"] += 1
        s["first_date"] = min(s["first_date"], labor.work_date)
        s["last_date"] = max(s["last_date"], labor.work_date)

        d = daily.setdefault((labor.work_date, labor.worker_name), {
            "work_date": labor.work_date,
            "worker_name": labor.worker_name,
            "hours": 0.0,
            "vehicle_ids": set(),
            "work_orders": set(),
            "codes": [],
        })
        d["hours"] += labor.hours or 0
        d["vehicle_ids"].add(vehicle.id)
        d["work_orders"].add(wo.id)
        if vehicle.code not in d["codes"]:
            d["codes"].append(vehicle.code)

        detail.append({
            "id": labor.id,
            "worker_name": labor.worker_name,
            "work_date": labor.work_date,
            "hours": labor.hours,
            "rate_per_hour": labor.rate_per_hour,
            "description": labor.description,
            "role": labor.role,
            "work_order_id": wo.id,
            "work_order_title": wo.title,
            "work_order_status": wo.status,
            "vehicle_id": vehicle.id,
            "vehicle_code": vehicle.code,
            "vehicle_make": vehicle.make,
            "vehicle_model": vehicle.model,
        })

    summary_rows = sorted(
        (
            {
                "worker_name": s["worker_name"],
                "work_orders_touched": len(s["work_orders"]),
                "vehicles_touched": len(s["vehicles"]),
                "total_hours": s["total_hours"],
                "total_cost": s["total_cost"],
                "labor_entries": s["labor_entries"],
                "first_date": s["first_date"],
                "last_date": s["last_date"],
            }
            for s in summary.values()
        ),
        key=lambda r: r["total_hours"],
        reverse=True,
    )
    daily_rows = [
        {
            "work_date": d["work_date"],
            "worker_name": d["worker_name"],
            "hours": d["hours"],
            "vehicles": len(d["vehicle_ids"]),
            "work_orders": len(d["work_orders"]),
            "vehicle_codes": ",".join(d["codes"]),
        }
        for d in daily.values()
    ]

    mechanics = [
        name for name, in (
            db.query(WorkOrderLabor.worker_name)
            .join(WorkOrder, WorkOrderLabor.work_order_id == WorkOrder.id)
            .filter(WorkOrder.organization_id == org)
            .distinct()
            .order_by(WorkOrderLabor.worker_name.asc())
        )
    ]

    return {
        "period": period,
        "period_start": period_start,
        "period_end": period_end,
        "mechanics": mechanics,
        "summary": summary_rows,
        "daily_breakdown": daily_rows,
        "detail": detail,
    }


# ---------- TRACKING REPORTS ----------

def list_tracking_reports(
    db: Session,
    org: Optional[str] = None,
    vehicle_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    q = db.query(VehicleTrackingReport, Vehicle).join(Vehicle, VehicleTrackingReport.vehicle_id == Vehicle.id)
    if org:
        q = q.filter(VehicleTrackingReport.organization_id == org)
    if vehicle_id:
        q = q.filter(VehicleTrackingReport.vehicle_id == vehicle_id)
    if date_from:
        q = q.filter(VehicleTrackingReport.report_date >= date_from)
    if date_to:
        q = q.filter(VehicleTrackingReport.report_date <= date_to)
    rows = q.order_by(VehicleTrackingReport.report_date.desc(), Vehicle.code.asc()).limit(limit).all()
    return [with_vehicle(r, v) for r, v in rows]


def generate_tracking_reports(
    db: Session,
    org: str,
    report_date: Optional[date] = None,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    vehicle_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Derive one report per actively tracked vehicle from its trips.

    Vehicles that already have a report for ``report_date`` are skipped.
    """
    report_date = report_date or today()
    period_start = period_start or report_date
    period_end = period_end or report_date

    q = db.query(Vehicle).filter(
        Vehicle.organization_id == org,
        Vehicle.tracker_imei != "",
        Vehicle.tracker_status == "active",
    )
    if vehicle_id:
        q = q.filter(Vehicle.id == vehicle_id)
    vehicles = q.order_by(Vehicle.code).all()
    if not vehicles:
        raise InvalidInputError(
            "No vehicles with active trackers found. "
            "Assign IMEI numbers and set tracker status to 'active' first.",
            extra={"generated": 0},
        )

    window_start = datetime.combine(period_start, time.min)
    window_end = datetime.combine(period_end + timedelta(days=1), time.min)
    generated = []
    for v in vehicles:
        existing = (
            db.query(VehicleTrackingReport.id)
            .filter(VehicleTrackingReport.vehicle_id == v.id, VehicleTrackingReport.report_date == report_date)
            .first()
        )
        if existing is not None:
            continue

        trips = (
            db.query(Trip)
            .filter(Trip.vehicle_id == v.id, Trip.checkout_at >= window_start, Trip.checkout_at < window_end)
            .order_by(Trip.checkout_at.asc())
            .all()
        )
        total_distance = sum(t.distance or 0 for t in trips)
        driving_hours = 0.0
        for t in trips:
            if t.checkin_at and t.checkin_at > t.checkout_at:
                driving_hours += (t.checkin_at - t.checkout_at).total_seconds() / 3600
        start_location = trips[0].departure_location if trips else ""
        end_location = (trips[-1].arrival_location or trips[-1].departure_location) if trips else ""

        db.add(VehicleTrackingReport(
            organization_id=org,
            vehicle_id=v.id,
            report_date=report_date,
            period_start=period_start,
            period_end=period_end,
            total_distance_km=total_distance,
            total_trips=len(trips),
            total_driving_hours=round(driving_hours, 2),
            avg_speed_kmh=round(total_distance / driving_hours) if total_distance > 0 and driving_hours > 0 else 0,
            start_location=start_location,
            end_location=end_location,
            report_source="auto-generated",
            raw_data={"tripIds": [t.id for t in trips]},
            notes=f"Auto-generated from {len(trips)} trip(s) for {v.code}",
        ))
        generated.append(v.code)

    logger.info(
        "tracking_reports_generated",
        organization_id=org,
        report_date=str(report_date),
        generated=len(generated),
        skipped=len(vehicles) - len(generated),
    )
    return {
        "generated": len(generated),
        "vehicles": generated,
        "report_date": report_date,
        "period_start": period_start,
        "period_end": period_end,
        "skipped_existing": len(vehicles) - len(generated),
    }


# ---------- MAP ----------

def fleet_vehicles(db: Session, org: str) -> List[Vehicle]:
    return db.query(Vehicle).filter(Vehicle.organization_id == org).order_by(Vehicle.code).all()


async def vehicle_locations(
    vehicles: List[Vehicle],
    tracker: TrackerClient,
    stale_after_s: int,
) -> Dict[str, Any]:
    """Map positions: a live GPS fix where one exists, else the vehicle's site.

    Vehicles are loaded beforehand so no database work runs on the event loop.
    """
    imeis = sorted({v.tracker_imei for v in vehicles if is_trackable(v.tracker_imei)})
    positions = await tracker.last_positions(imeis)

    result = []
    for v in vehicles:
        gps = positions.get(v.tracker_imei) if v.tracker_imei else None
        live = gps is not None and gps.is_live(stale_after_s)
        coords = {"lat": gps.lat, "lng": gps.lng} if live else site_position(v.current_location)
        result.append({
            "id": v.id,
            "code": v.code,
            "make": v.make,
            "model": v.model,
            "license_plate": v.license_plate,
            "current_location": v.current_location,
            "status": v.status,
            "tracker_imei": v.tracker_imei,
            "tracker_status": v.tracker_status,
            "tracker_provider": v.tracker_provider,
            "lat": coords["lat"],
            "lng": coords["lng"],
            "gps_live": live,
            "gps_timestamp": gps.timestamp if gps else None,
            "gps_speed": gps.speed if gps else None,
            "gps_mileage": gps.mileage if gps else None,
        })
    return {"vehicles": result, "sites": SITE_COORDINATES}
