from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth.security import get_actor, actor_name, actor_id
from ..db import get_db
from ..models.models import Trip, TripStop, Vehicle, User
from ..schemas.common import MessageResponse
from ..schemas.trips import (
    TripCheckout,
    TripCheckin,
    TripUpdate,
    TripResponse,
    TripDetailResponse,
)
from ..services import trips as trip_service
from ..services.reports import with_vehicle
from ..services.vehicles import get_vehicle
from .deps import get_org, default_org


router = APIRouter(prefix="/api/trips", tags=["trips"])

# Columns that may not be cleared through PATCH
_REQUIRED = ("odo_start", "departure_location", "destination", "checkout_at")


def _trip_out(db: Session, trip: Trip, with_stops: bool = False) -> dict:
    data = with_vehicle(trip, db.get(Vehicle, trip.vehicle_id))
    if with_stops:
        data["stops"] = (
            db.query(TripStop)
            .filter(TripStop.trip_id == trip.id)
            .order_by(TripStop.stop_number.asc())
            .all()
        )
    return data


@router.get("", response_model=List[TripResponse])
def list_trips(
    org: str = Depends(get_org),
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    """Newest trips first; ``active=true`` keeps only trips still checked out"""
    q = (
        db.query(Trip, Vehicle)
        .join(Vehicle, Trip.vehicle_id == Vehicle.id)
        .filter(Trip.organization_id == org)
    )
    if vehicle_id:
        q = q.filter(Trip.vehicle_id == vehicle_id)
    if active:
        q = q.filter(Trip.checkin_at.is_(None))
    rows = q.order_by(Trip.checkout_at.desc()).limit(100).all()
    return [with_vehicle(t, v) for t, v in rows]


@router.post("", response_model=TripDetailResponse, status_code=201)
def checkout_vehicle(
    payload: TripCheckout,
    request: Request,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_actor),
):
    """Check a vehicle out: opens a trip and deploys the vehicle"""
    vehicle = get_vehicle(db, payload.vehicle_id)
    data = payload.model_dump(exclude={"vehicle_id", "stops"})
    data["organization_id"] = default_org(request, payload.organization_id)
    data["driver_id"] = actor_id(actor, payload.driver_id)
    data["driver_name"] = actor_name(actor, payload.driver_name)
    stops = [s.model_dump() for s in payload.stops]

    trip = trip_service.checkout(db, vehicle, data, stops)
    db.commit()
    return _trip_out(db, trip, with_stops=True)


@router.get("/{trip_id}", response_model=TripDetailResponse)
def get_trip(trip_id: str, db: Session = Depends(get_db)):
    return _trip_out(db, trip_service.get_trip(db, trip_id), with_stops=True)


@router.patch("/{trip_id}", response_model=TripResponse)
def update_trip(
    trip_id: str,
    payload: TripUpdate,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    trip = trip_service.get_trip(db, trip_id)
    changes = payload.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if not (v is None and k in _REQUIRED)}
    trip_service.update_trip(db, trip, changes)
    db.commit()
    return _trip_out(db, trip)


@router.api_route("/{trip_id}/checkin", methods=["PATCH", "POST"], response_model=TripResponse)
def checkin_trip(
    trip_id: str,
    payload: TripCheckin,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    """Check a vehicle back in; distance is derived from the odometer readings"""
    trip = trip_service.get_trip(db, trip_id)
    trip_service.checkin(
        db,
        trip,
        odo_end=payload.odo_end,
        arrival_location=payload.arrival_location,
        issues_observed=payload.issues_observed,
    )
    db.commit()
    return _trip_out(db, trip)


@router.delete("/{trip_id}", response_model=MessageResponse)
def delete_trip(
    trip_id: str,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    trip = trip_service.get_trip(db, trip_id)
    db.delete(trip)
    db.commit()
    return {"success": True}
