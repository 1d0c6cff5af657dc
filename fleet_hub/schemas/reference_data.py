import json
from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum

from pydantic import Field, field_validator

from .common import RequestModel, OrmModel


class ReferenceType(str, Enum):
    site = "site"
    mission_type = "mission_type"
    third_party_shop = "third_party_shop"


class ReferenceDataCreate(RequestModel):
    organization_id: Optional[str] = None
    type: ReferenceType
    code: str = Field(..., min_length=1, max_length=50)
    label: str = Field(..., min_length=1, max_length=255)
    sort_order: int = 0
    meta: Dict[str, Any] = {}


class ReferenceDataUpdate(RequestModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    sort_order: Optional[int] = None
    active: Optional[bool] = None
    meta: Optional[Dict[str, Any]] = None


class ReferenceDataResponse(OrmModel):
    id: str
    organization_id: str
    type: str
    code: str
    label: str
    sort_order: int
    active: bool
    meta: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

    @field_validator("meta", mode="before")
    def parse_meta(cls, v):
        # stored as JSON text
        if isinstance(v, str):
            return json.loads(v or "{}")
        return v
