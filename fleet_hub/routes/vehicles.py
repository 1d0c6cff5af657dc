from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth.security import get_actor, actor_name
from ..db import get_db
from ..errors import ConflictError, InvalidInputError
from ..models.models import Vehicle, StatusLog, User
from ..schemas.reports import VehicleLocationsResponse
from ..schemas.vehicles import (
    VehicleCreate,
    VehicleUpdate,
    VehicleResponse,
    StatusLogResponse,
    VehicleTCO,
)
from ..services import reports
from ..services.time_rules import utcnow
from ..services.tracker_client import TrackerClient
from ..services.vehicles import get_vehicle, set_vehicle_status
from .deps import get_org, get_tracker, default_org


router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])
logger = structlog.get_logger()


def _ensure_unique_code(db: Session, org: str, code: str, exclude_id: Optional[str] = None) -> None:
    q = db.query(Vehicle.id).filter(Vehicle.organization_id == org, Vehicle.code == code)
    if exclude_id:
        q = q.filter(Vehicle.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"Vehicle code '{code}' already exists in this organization")


@router.get("", response_model=List[VehicleResponse])
def list_vehicles(
    org: str = Depends(get_org),
    status: Optional[str] = None,
    asset_class: Optional[str] = Query(None, alias="assetClass"),
    db: Session = Depends(get_db),
):
    q = db.query(Vehicle).filter(Vehicle.organization_id == org)
    if status:
        q = q.filter(Vehicle.status == status)
    if asset_class:
        q = q.filter(Vehicle.asset_class == asset_class)
    return q.order_by(Vehicle.code).all()


@router.post("", response_model=VehicleResponse, status_code=201)
def create_vehicle(
    payload: VehicleCreate,
    request: Request,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    org = default_org(request, payload.organization_id)
    _ensure_unique_code(db, org, payload.code)

    data = payload.model_dump(exclude={"organization_id"}, mode="json")
    data["current_location"] = payload.current_location or payload.home_location
    now = utcnow()
    vehicle = Vehicle(organization_id=org, created_at=now, updated_at=now, **data)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info("vehicle_created", vehicle_id=vehicle.id, code=vehicle.code, organization_id=org)
    return vehicle


def _org_vehicles(
    request: Request,
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    db: Session = Depends(get_db),
) -> List[Vehicle]:
    # sync dependency, so FastAPI runs the query in its threadpool
    return reports.fleet_vehicles(db, default_org(request, organization_id))


@router.get("/locations", response_model=VehicleLocationsResponse)
async def vehicle_locations(
    request: Request,
    vehicles: List[Vehicle] = Depends(_org_vehicles),
    tracker: TrackerClient = Depends(get_tracker),
):
    """Map positions for every vehicle: live GPS where available, else the site."""
    return await reports.vehicle_locations(vehicles, tracker, request.app.state.settings.gps_stale_after_s)


@router.get("/tco", response_model=List[VehicleTCO])
def vehicle_tco(org: str = Depends(get_org), db: Session = Depends(get_db)):
    """Total cost of ownership per vehicle, most expensive first"""
    return reports.vehicle_tco(db, org)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
def get_vehicle_by_id(vehicle_id: str, db: Session = Depends(get_db)):
    return get_vehicle(db, vehicle_id)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
def update_vehicle(
    vehicle_id: str,
    payload: VehicleUpdate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_actor),
):
    vehicle = get_vehicle(db, vehicle_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"changed_by"}, mode="json")
    if not changes:
        raise InvalidInputError("No fields to update")

    if changes.get("code"):
        _ensure_unique_code(db, vehicle.organization_id, changes["code"], exclude_id=vehicle.id)

    new_status = changes.pop("status", None)
    for key, value in changes.items():
        if value is None and key != "year":
            continue
        setattr(vehicle, key, value)
    vehicle.updated_at = utcnow()
    if new_status:
        set_vehicle_status(db, vehicle, new_status, changed_by=actor_name(actor, payload.changed_by))

    db.commit()
    db.refresh(vehicle)
    return vehicle


@router.delete("/{vehicle_id}", response_model=VehicleResponse)
def retire_vehicle(
    vehicle_id: str,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_actor),
):
    """Retire a vehicle (soft delete: status becomes written-off)"""
    vehicle = get_vehicle(db, vehicle_id)
    set_vehicle_status(db, vehicle, "written-off", changed_by=actor_name(actor))
    db.commit()
    db.refresh(vehicle)
    logger.info("vehicle_retired", vehicle_id=vehicle.id, code=vehicle.code)
    return vehicle


@router.get("/{vehicle_id}/status-log", response_model=List[StatusLogResponse])
def vehicle_status_log(vehicle_id: str, db: Session = Depends(get_db)):
    get_vehicle(db, vehicle_id)
    return (
        db.query(StatusLog)
        .filter(StatusLog.entity_type == "vehicle", StatusLog.entity_id == vehicle_id)
        .order_by(StatusLog.changed_at.desc(), StatusLog.id.desc())
        .all()
    )
