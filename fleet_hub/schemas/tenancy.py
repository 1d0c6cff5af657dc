from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import RequestModel, OrmModel


class OrganizationResponse(OrmModel):
    id: str
    name: str
    code: str
    country: str
    currency: str
    timezone_offset: int
    active: bool


class UserSync(RequestModel):
    firebase_uid: Optional[str] = None
    email: str = Field(..., min_length=3)
    first_name: str = ""
    last_name: str = ""
    name: Optional[str] = None
    role: str = "driver"
    department: str = ""
    organization_id: Optional[str] = None
    permission_level: int = 5
    is_active: bool = True


class UserResponse(OrmModel):
    id: str
    firebase_uid: Optional[str] = None
    email: str
    first_name: str
    last_name: str
    name: str
    role: str
    department: str
    organization_id: str
    permission_level: int
    is_active: bool
    created_at: datetime


class TokenRequest(RequestModel):
    email: str = Field(..., min_length=3)


class TokenResponse(UserResponse):
    token: str
