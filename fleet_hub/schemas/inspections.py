from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import Field

from .common import RequestModel, OrmModel


class InspectionRating(str, Enum):
    pass_rating = "pass"
    caution = "caution"
    fail = "fail"


class InspectionType(str, Enum):
    pre_departure = "pre-departure"
    detailed = "detailed"


class InspectionItem(RequestModel):
    category: str = ""
    item: str = Field(..., min_length=1)
    rating: InspectionRating
    note: str = ""


class InspectionCreate(RequestModel):
    organization_id: Optional[str] = None
    vehicle_id: str
    inspector_id: str = ""
    inspector_name: str = ""
    type: InspectionType = InspectionType.pre_departure
    items: List[InspectionItem] = []
    source: str = "manual"
    source_image_url: str = ""


class InspectionResponse(OrmModel):
    id: str
    organization_id: str
    vehicle_id: str
    vehicle_code: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    inspector_id: str
    inspector_name: str
    type: str
    items: List[dict]
    overall_pass: bool
    source: str
    source_image_url: str
    work_order_id: Optional[str] = None
    created_at: datetime
