from datetime import datetime, date
from typing import Any, Dict, List, Optional
from enum import Enum

from pydantic import Field

from .common import RequestModel, OrmModel, CamelResponse
from .trips import TripResponse
from .work_orders import WorkOrderResponse


class ReportPeriod(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class DashboardResponse(CamelResponse):
    total_vehicles: int
    operational: int
    deployed: int
    maintenance_hq: int
    maintenance_3rd: int = Field(..., alias="maintenance3rd")
    awaiting_parts: int
    grounded: int
    written_off: int
    open_work_orders: int
    avg_repair_days: float
    active_trips: List[TripResponse]
    recent_work_orders: List[WorkOrderResponse]


class MechanicSummary(OrmModel):
    worker_name: str
    work_orders_touched: int
    vehicles_touched: int
    total_hours: float
    total_cost: float
    labor_entries: int
    first_date: date
    last_date: date


class MechanicDay(OrmModel):
    work_date: date
    worker_name: str
    hours: float
    vehicles: int
    work_orders: int
    vehicle_codes: str


class MechanicDetail(OrmModel):
    id: str
    worker_name: str
    work_date: date
    hours: float
    rate_per_hour: float
    description: str
    role: str
    work_order_id: str
    work_order_title: str
    work_order_status: str
    vehicle_id: str
    vehicle_code: str
    vehicle_make: str
    vehicle_model: str


class MechanicActivityResponse(CamelResponse):
    period: ReportPeriod
    period_start: date
    period_end: date
    mechanics: List[str]
    summary: List[MechanicSummary]
    daily_breakdown: List[MechanicDay]
    detail: List[MechanicDetail]


class TrackingReportCreate(RequestModel):
    report_date: date
    period_start: date
    period_end: date
    total_distance_km: float = Field(0, ge=0)
    total_trips: int = Field(0, ge=0)
    total_driving_hours: float = Field(0, ge=0)
    total_idle_hours: float = Field(0, ge=0)
    max_speed_kmh: float = Field(0, ge=0)
    avg_speed_kmh: float = Field(0, ge=0)
    geofence_violations: int = Field(0, ge=0)
    harsh_braking_events: int = Field(0, ge=0)
    harsh_acceleration_events: int = Field(0, ge=0)
    after_hours_usage_minutes: int = Field(0, ge=0)
    fuel_consumed_liters: float = Field(0, ge=0)
    start_location: str = ""
    end_location: str = ""
    report_source: str = "manual"
    raw_data: Dict[str, Any] = {}
    notes: str = ""


class TrackingReportGenerate(RequestModel):
    organization_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    report_date: Optional[date] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None


class TrackingReportResponse(OrmModel):
    id: str
    organization_id: str
    vehicle_id: str
    vehicle_code: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    report_date: date
    period_start: date
    period_end: date
    total_distance_km: float
    total_trips: int
    total_driving_hours: float
    total_idle_hours: float
    max_speed_kmh: float
    avg_speed_kmh: float
    geofence_violations: int
    harsh_braking_events: int
    harsh_acceleration_events: int
    after_hours_usage_minutes: int
    fuel_consumed_liters: float
    start_location: str
    end_location: str
    report_source: str
    raw_data: Dict[str, Any] = {}
    notes: str
    generated_at: datetime
    created_at: datetime


class TrackingReportGenerateResponse(CamelResponse):
    generated: int
    vehicles: List[str]
    report_date: date
    period_start: date
    period_end: date
    skipped_existing: int


class SiteCoordinates(CamelResponse):
    lat: float
    lng: float


class VehicleLocation(CamelResponse):
    id: str
    code: str
    make: str
    model: str
    license_plate: str
    current_location: str
    status: str
    tracker_imei: str
    tracker_status: str
    tracker_provider: str
    lat: float
    lng: float
    gps_live: bool = False
    gps_timestamp: Optional[int] = None
    gps_speed: Optional[float] = None
    gps_mileage: Optional[float] = None


class VehicleLocationsResponse(CamelResponse):
    vehicles: List[VehicleLocation]
    sites: Dict[str, SiteCoordinates]
