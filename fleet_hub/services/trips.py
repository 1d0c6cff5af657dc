"""
Trip check-out / check-in.

A trip is open while ``checkin_at`` is null. Check-out deploys the vehicle to
the destination; check-in returns it to service at the arrival location.
"""
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import Trip, TripStop, Vehicle
from .time_rules import utcnow, to_naive_utc
from .vehicles import set_vehicle_status


logger = structlog.get_logger()


def get_trip(db: Session, trip_id: str) -> Trip:
    trip = db.get(Trip, trip_id)
    if trip is None:
        raise NotFoundError("Trip not found")
    return trip


def trip_distance(odo_start: Optional[int], odo_end: Optional[int]) -> Optional[int]:
    """Odometer delta, or None when either reading is missing.

    A negative delta is rejected rather than stored.
    """
    if odo_start is None or odo_end is None:
        return None
    distance = odo_end - odo_start
    if distance < 0:
        raise InvalidInputError(
            f"Odometer end ({odo_end}) is lower than odometer start ({odo_start})"
        )
    return distance


def checkout(db: Session, vehicle: Vehicle, data: Dict[str, Any], stops=None) -> Trip:
    open_trip = (
        db.query(Trip.id)
        .filter(Trip.vehicle_id == vehicle.id, Trip.checkin_at.is_(None))
        .first()
    )
    if open_trip is not None:
        logger.warning(
            "vehicle_already_checked_out",
            vehicle_id=vehicle.id,
            code=vehicle.code,
            open_trip_id=open_trip.id,
        )

    trip = Trip(
        organization_id=data.pop("organization_id", None) or vehicle.organization_id,
        vehicle_id=vehicle.id,
        checkout_at=utcnow(),
        **data,
    )
    db.add(trip)
    db.flush()

    for number, stop in enumerate(stops or [], start=1):
        db.add(TripStop(trip_id=trip.id, stop_number=number, **stop))

    set_vehicle_status(
        db, vehicle, "deployed",
        changed_by=trip.driver_name,
        location=trip.destination,
    )
    logger.info(
        "trip_checked_out",
        trip_id=trip.id,
        vehicle_id=vehicle.id,
        destination=trip.destination,
        stops=len(stops or []),
    )
    return trip


def checkin(
    db: Session,
    trip: Trip,
    odo_end: Optional[int] = None,
    arrival_location: str = "",
    issues_observed: str = "",
) -> Trip:
    if trip.checkin_at is not None:
        raise InvalidInputError("Trip is already checked in")

    distance = trip_distance(trip.odo_start, odo_end)
    arrival = arrival_location or trip.destination

    trip.odo_end = odo_end
    trip.arrival_location = arrival
    trip.issues_observed = issues_observed or ""
    trip.distance = distance
    trip.checkin_at = utcnow()

    vehicle = db.get(Vehicle, trip.vehicle_id)
    if vehicle is not None:
        set_vehicle_status(
            db, vehicle, "operational",
            changed_by=trip.driver_name,
            location=arrival,
        )
    logger.info(
        "trip_checked_in",
        trip_id=trip.id,
        vehicle_id=trip.vehicle_id,
        distance=distance,
        arrival_location=arrival,
    )
    return trip


def update_trip(db: Session, trip: Trip, changes: Dict[str, Any]) -> Trip:
    """Apply allow-listed edits; distance follows the odometer readings."""
    if not changes:
        raise InvalidInputError("No fields to update")

    for key in ("checkout_at", "checkin_at"):
        if key in changes:
            changes[key] = to_naive_utc(changes[key])

    if "odo_start" in changes or "odo_end" in changes:
        odo_start = changes.get("odo_start", trip.odo_start)
        odo_end = changes.get("odo_end", trip.odo_end)
        distance = trip_distance(odo_start, odo_end)
        if distance is not None:
            trip.distance = distance

    for key, value in changes.items():
        setattr(trip, key, value)
    logger.info("trip_updated", trip_id=trip.id, fields=sorted(changes))
    return trip
