from datetime import datetime
from typing import Optional
from enum import Enum

from pydantic import Field, field_validator

from .common import RequestModel, OrmModel


class VehicleStatus(str, Enum):
    operational = "operational"
    deployed = "deployed"
    maintenance_hq = "maintenance-hq"
    maintenance_3rdparty = "maintenance-3rdparty"
    awaiting_parts = "awaiting-parts"
    grounded = "grounded"
    written_off = "written-off"


class AssetClass(str, Enum):
    light = "light-vehicle"
    heavy = "heavy-vehicle"
    equipment = "equipment"


class TrackerStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    no_signal = "no-signal"
    not_installed = "not-installed"
    unknown = "unknown"


class VehicleCreate(RequestModel):
    organization_id: Optional[str] = None
    code: str = Field(..., min_length=1, max_length=50)
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    license_plate: str = ""
    vin: str = ""
    engine_number: str = ""
    asset_class: AssetClass = AssetClass.light
    home_location: str = "HQ"
    current_location: Optional[str] = None
    status: VehicleStatus = VehicleStatus.operational
    photo_url: str = ""
    date_in_service: str = ""
    notes: str = ""
    tracker_imei: str = ""
    tracker_provider: str = ""
    tracker_sim: str = ""
    tracker_model: str = ""
    tracker_install_date: str = ""
    tracker_status: TrackerStatus = TrackerStatus.unknown

    @field_validator("code")
    def strip_code(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("code must not be blank")
        return v


class VehicleUpdate(RequestModel):
    code: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    engine_number: Optional[str] = None
    asset_class: Optional[AssetClass] = None
    home_location: Optional[str] = None
    current_location: Optional[str] = None
    status: Optional[VehicleStatus] = None
    photo_url: Optional[str] = None
    date_in_service: Optional[str] = None
    notes: Optional[str] = None
    tracker_imei: Optional[str] = None
    tracker_provider: Optional[str] = None
    tracker_sim: Optional[str] = None
    tracker_model: Optional[str] = None
    tracker_install_date: Optional[str] = None
    tracker_status: Optional[TrackerStatus] = None
    # Not a column: recorded in the status log
    changed_by: Optional[str] = None


class VehicleResponse(OrmModel):
    id: str
    organization_id: str
    code: str
    make: str
    model: str
    year: Optional[int] = None
    license_plate: str
    vin: str
    engine_number: str
    asset_class: str
    home_location: str
    current_location: str
    status: str
    photo_url: str
    date_in_service: str
    notes: str
    tracker_imei: str
    tracker_provider: str
    tracker_sim: str
    tracker_model: str
    tracker_install_date: str
    tracker_status: str
    created_at: datetime
    updated_at: datetime


class StatusLogResponse(OrmModel):
    id: int
    entity_type: str
    entity_id: str
    old_status: Optional[str] = None
    new_status: str
    changed_by: str
    changed_at: datetime


class VehicleTCO(OrmModel):
    vehicle_id: str
    vehicle_code: str
    vehicle_make: str
    vehicle_model: str
    parts_cost: float
    labour_cost: float
    third_party_cost: float
    total_cost: float
    work_order_count: int
    total_downtime_days: int
    avg_repair_days: float
    cost_per_day: float
