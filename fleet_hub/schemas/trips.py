from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import RequestModel, OrmModel


class TripStopCreate(RequestModel):
    location: str = Field(..., min_length=1)
    load_out: str = ""
    load_in: str = ""
    notes: str = ""


class TripCheckout(RequestModel):
    organization_id: Optional[str] = None
    vehicle_id: str
    driver_id: str = ""
    driver_name: str = ""
    odo_start: int = Field(..., ge=0)
    departure_location: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    mission_type: str = "other"
    passengers: str = ""
    load_out: str = ""
    load_in: str = ""
    stops: List[TripStopCreate] = []


class TripCheckin(RequestModel):
    odo_end: Optional[int] = Field(None, ge=0)
    arrival_location: str = ""
    issues_observed: str = ""


class TripUpdate(RequestModel):
    driver_name: Optional[str] = None
    driver_id: Optional[str] = None
    odo_start: Optional[int] = Field(None, ge=0)
    odo_end: Optional[int] = Field(None, ge=0)
    departure_location: Optional[str] = None
    destination: Optional[str] = None
    arrival_location: Optional[str] = None
    mission_type: Optional[str] = None
    passengers: Optional[str] = None
    load_out: Optional[str] = None
    load_in: Optional[str] = None
    checkout_at: Optional[datetime] = None
    checkin_at: Optional[datetime] = None
    issues_observed: Optional[str] = None
    source: Optional[str] = None


class TripStopResponse(OrmModel):
    id: str
    trip_id: str
    stop_number: int
    location: str
    arrived_at: Optional[datetime] = None
    departed_at: Optional[datetime] = None
    odo_reading: Optional[int] = None
    load_out: str
    load_in: str
    notes: str


class TripResponse(OrmModel):
    id: str
    organization_id: str
    vehicle_id: str
    vehicle_code: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    driver_id: str
    driver_name: str
    odo_start: int
    odo_end: Optional[int] = None
    departure_location: str
    destination: str
    arrival_location: str
    mission_type: str
    passengers: str
    load_out: str
    load_in: str
    checkout_at: datetime
    checkin_at: Optional[datetime] = None
    issues_observed: str
    distance: Optional[int] = None
    source: str


class TripDetailResponse(TripResponse):
    stops: List[TripStopResponse] = []
