from datetime import datetime
from typing import List, Optional
from enum import Enum

from .common import RequestModel, OrmModel, CamelResponse
from .work_orders import RepairLocation
from .media import MediaResponse


class Severity(str, Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class FieldReportStatus(str, Enum):
    open = "open"
    converted = "converted"
    resolved = "resolved"


class FieldReportResponse(OrmModel):
    id: str
    organization_id: str
    vehicle_id: str
    vehicle_code: Optional[str] = None
    reported_by_id: str
    reported_by_name: str
    title: str
    description: str
    severity: str
    location: str
    odometer: Optional[int] = None
    is_driveable: bool
    photo_count: int
    status: str
    work_order_id: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None
    photos: List[MediaResponse] = []


class ConvertRequest(RequestModel):
    assigned_to: str = ""
    repair_location: RepairLocation = RepairLocation.hq


class ConvertResponse(CamelResponse):
    work_order_id: str
    report_id: str
    status: str = "converted"
