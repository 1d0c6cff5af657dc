from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth.security import get_actor, actor_name, actor_id
from ..db import get_db
from ..models.models import Inspection, Vehicle, User
from ..schemas.inspections import InspectionCreate, InspectionResponse
from ..services import inspections as inspection_service
from ..services.reports import with_vehicle
from ..services.vehicles import get_vehicle
from .deps import get_org, default_org


router = APIRouter(prefix="/api/inspections", tags=["inspections"])


@router.get("", response_model=List[InspectionResponse])
def list_inspections(
    org: str = Depends(get_org),
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    db: Session = Depends(get_db),
):
    q = (
        db.query(Inspection, Vehicle)
        .join(Vehicle, Inspection.vehicle_id == Vehicle.id)
        .filter(Inspection.organization_id == org)
    )
    if vehicle_id:
        q = q.filter(Inspection.vehicle_id == vehicle_id)
    rows = q.order_by(Inspection.created_at.desc()).limit(100).all()
    return [with_vehicle(i, v) for i, v in rows]


@router.post("", response_model=InspectionResponse, status_code=201)
def submit_inspection(
    payload: InspectionCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_actor),
):
    """Record a checklist. Any failing item raises a high-priority work order."""
    vehicle = get_vehicle(db, payload.vehicle_id)
    inspection = inspection_service.create_inspection(
        db,
        vehicle,
        [item.model_dump(mode="json") for item in payload.items],
        organization_id=default_org(request, payload.organization_id),
        inspector_id=actor_id(actor, payload.inspector_id),
        inspector_name=actor_name(actor, payload.inspector_name),
        type=payload.type.value,
        source=payload.source,
        source_image_url=payload.source_image_url,
    )
    db.commit()
    return with_vehicle(inspection, vehicle)


@router.get("/{inspection_id}", response_model=InspectionResponse)
def get_inspection(inspection_id: str, db: Session = Depends(get_db)):
    inspection = inspection_service.get_inspection(db, inspection_id)
    return with_vehicle(inspection, db.get(Vehicle, inspection.vehicle_id))
