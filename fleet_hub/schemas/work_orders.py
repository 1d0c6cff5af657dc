from datetime import datetime, date
from typing import List, Optional
from enum import Enum

from pydantic import Field, field_validator

from .common import RequestModel, OrmModel


class WorkOrderStatus(str, Enum):
    submitted = "submitted"
    queued = "queued"
    in_progress = "in-progress"
    awaiting_parts = "awaiting-parts"
    completed = "completed"
    closed = "closed"
    return_repair = "return-repair"
    cancelled = "cancelled"
    rejected = "rejected"


class WorkOrderType(str, Enum):
    corrective = "corrective"
    scheduled = "scheduled"
    inspection_flagged = "inspection-flagged"


class WorkOrderPriority(str, Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class RepairLocation(str, Enum):
    hq = "hq"
    third_party = "3rd-party"
    field = "field"


class PartStatus(str, Enum):
    needed = "needed"
    pr_submitted = "pr-submitted"
    approved = "approved"
    ordered = "ordered"
    received = "received"


class WorkOrderCreate(RequestModel):
    organization_id: Optional[str] = None
    vehicle_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    type: WorkOrderType = WorkOrderType.corrective
    priority: WorkOrderPriority = WorkOrderPriority.medium
    status: WorkOrderStatus = WorkOrderStatus.submitted
    assigned_to: str = ""
    repair_location: RepairLocation = RepairLocation.hq
    third_party_shop: str = ""
    reported_by: str = ""
    odo_at_report: Optional[int] = Field(None, ge=0)
    remarks: str = ""
    downtime_start: Optional[datetime] = None
    changed_by_id: Optional[str] = None
    changed_by_name: Optional[str] = None

    @field_validator("title")
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("status")
    def initial_status(cls, v):
        if v not in (WorkOrderStatus.submitted, WorkOrderStatus.queued):
            raise ValueError("a new work order must start as submitted or queued")
        return v


class WorkOrderUpdate(RequestModel):
    """Editable fields plus the transition metadata used when ``status`` changes.

    Cost columns are absent on purpose: they are derived from labor, parts and
    PO links.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[WorkOrderType] = None
    priority: Optional[WorkOrderPriority] = None
    status: Optional[WorkOrderStatus] = None
    assigned_to: Optional[str] = None
    repair_location: Optional[RepairLocation] = None
    third_party_shop: Optional[str] = None
    reported_by: Optional[str] = None
    validated_by: Optional[str] = None
    closing_inspection_id: Optional[str] = None
    odo_at_report: Optional[int] = Field(None, ge=0)
    remarks: Optional[str] = None
    downtime_start: Optional[datetime] = None
    downtime_end: Optional[datetime] = None
    changed_by_id: Optional[str] = None
    changed_by_name: Optional[str] = None
    reason: Optional[str] = None


class WorkOrderResponse(OrmModel):
    id: str
    organization_id: str
    vehicle_id: str
    vehicle_code: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    title: str
    description: str
    type: str
    priority: str
    status: str
    assigned_to: str
    repair_location: str
    third_party_shop: str
    reported_by: str
    validated_by: str
    closing_inspection_id: Optional[str] = None
    odo_at_report: Optional[int] = None
    total_labour_hours: float
    parts_cost: float
    labour_cost: float
    third_party_cost: float
    total_cost: float
    remarks: str
    downtime_start: datetime
    downtime_end: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class StatusHistoryResponse(OrmModel):
    id: int
    work_order_id: str
    from_status: Optional[str] = None
    to_status: str
    changed_by_id: str
    changed_by_name: str
    reason: str
    changed_at: datetime


class LaborCreate(RequestModel):
    worker_name: str = Field(..., min_length=1)
    worker_id: str = ""
    role: str = "mechanic"
    hours: float = Field(..., ge=0)
    rate_per_hour: float = Field(0, ge=0)
    description: str = ""
    work_date: Optional[date] = None


class LaborResponse(OrmModel):
    id: str
    work_order_id: str
    worker_name: str
    worker_id: str
    role: str
    hours: float
    rate_per_hour: float
    description: str
    work_date: date
    created_at: datetime


class POLinkCreate(RequestModel):
    pr_number: str = ""
    po_number: str = ""
    vendor: str = ""
    description: str = ""
    amount: float = Field(0, ge=0)
    currency: str = "LSL"
    status: str = "pending"
    pr_system_url: Optional[str] = None


class POLinkResponse(OrmModel):
    id: str
    work_order_id: str
    pr_number: str
    po_number: str
    vendor: str
    description: str
    amount: float
    currency: str
    status: str
    pr_system_url: str
    created_at: datetime


class PartCreate(RequestModel):
    description: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=0)
    unit_cost: Optional[float] = Field(None, ge=0)
    supplier: str = ""
    pr_status: PartStatus = PartStatus.needed
    delivery_eta: str = ""


class PartUpdate(RequestModel):
    description: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    unit_cost: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = None
    pr_status: Optional[PartStatus] = None
    delivery_eta: Optional[str] = None


class PartResponse(OrmModel):
    id: str
    work_order_id: str
    description: str
    quantity: int
    unit_cost: Optional[float] = None
    supplier: str
    pr_status: str
    delivery_eta: str
    created_at: datetime


class ProgressUpdateResponse(OrmModel):
    id: str
    work_order_id: str
    update_type: str
    note: str
    posted_by_id: str
    posted_by_name: str
    has_photos: bool
    photo_count: int
    created_at: datetime
    photos: List[dict] = []


class WorkOrderDetailResponse(WorkOrderResponse):
    days_open: int
    status_history: List[StatusHistoryResponse] = []
    labor: List[LaborResponse] = []
    po_links: List[POLinkResponse] = []
    parts: List[PartResponse] = []
