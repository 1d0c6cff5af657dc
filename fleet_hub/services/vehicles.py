"""
Vehicle status bookkeeping.
Every status change goes through ``set_vehicle_status`` so the status log
stays complete.
"""
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models.models import Vehicle, StatusLog
from .time_rules import utcnow


logger = structlog.get_logger()


def get_vehicle(db: Session, vehicle_id: str) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle not found")
    return vehicle


def set_vehicle_status(
    db: Session,
    vehicle: Vehicle,
    new_status: str,
    changed_by: str = "",
    location: Optional[str] = None,
) -> bool:
    """Set a vehicle's status (and optionally its location).

    Returns True when the status actually changed and a log row was written.
    """
    now = utcnow()
    if location:
        vehicle.current_location = location
    vehicle.updated_at = now
    if vehicle.status == new_status:
        return False
    db.add(StatusLog(
        entity_type="vehicle",
        entity_id=vehicle.id,
        old_status=vehicle.status,
        new_status=new_status,
        changed_by=changed_by or "",
        changed_at=now,
    ))
    logger.info(
        "vehicle_status_changed",
        vehicle_id=vehicle.id,
        code=vehicle.code,
        old_status=vehicle.status,
        new_status=new_status,
    )
    vehicle.status = new_status
    return True
