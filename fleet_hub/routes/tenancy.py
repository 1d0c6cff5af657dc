import hmac
import re
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.security import create_access_token, get_optional_user
from ..db import get_db
from ..models.models import Organization, User
from ..schemas.tenancy import OrganizationResponse, TokenRequest, TokenResponse, UserSync, UserResponse
from ..services.time_rules import utcnow
from .deps import get_org


router = APIRouter(prefix="/api", tags=["tenancy"])
logger = structlog.get_logger()


def normalize_org_id(org_id: str) -> str:
    return re.sub(r"\s+", "_", org_id.lower())


def from_directory(settings, supplied: Optional[str]) -> bool:
    """True when the caller presented the identity directory's shared secret."""
    secret = settings.identity_secret
    return bool(secret and supplied and hmac.compare_digest(secret, supplied))


@router.get("/organizations", response_model=List[OrganizationResponse])
def list_organizations(db: Session = Depends(get_db)):
    """Active organizations, by name"""
    return db.query(Organization).filter(Organization.active.is_(True)).order_by(Organization.name).all()


@router.get("/users", response_model=List[UserResponse])
def list_users(
    org: str = Depends(get_org),
    role: Optional[str] = None,
    db: Session = Depends(get_db),
):
    q = db.query(User).filter(User.organization_id == org)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.name).all()


@router.post("/users/sync", response_model=UserResponse)
def sync_user(
    payload: UserSync,
    request: Request,
    x_identity_secret: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_optional_user),
):
    """Upsert a user mirrored from the identity directory (matched by uid or email).

    Role, organization, permission level and active flag of an existing user
    only change when the directory itself or an admin performs the sync.
    """
    settings = request.app.state.settings
    trusted = from_directory(settings, x_identity_secret)
    if actor is None and not trusted and settings.require_auth:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    org_id = normalize_org_id(payload.organization_id or settings.default_organization_id)
    name = payload.name or f"{payload.first_name} {payload.last_name}".strip()

    conditions = [User.email == payload.email]
    if payload.firebase_uid:
        conditions.append(User.firebase_uid == payload.firebase_uid)
    user = db.query(User).filter(or_(*conditions)).first()
    created = user is None
    if created:
        user = User(email=payload.email)
        db.add(user)

    user.firebase_uid = payload.firebase_uid or user.firebase_uid
    user.email = payload.email
    user.first_name = payload.first_name
    user.last_name = payload.last_name
    user.name = name
    user.department = payload.department
    if created or trusted or (actor is not None and actor.role == "admin"):
        user.role = payload.role or "driver"
        user.organization_id = org_id
        user.permission_level = payload.permission_level
        user.is_active = payload.is_active
    elif payload.role != user.role:
        logger.warning("user_sync_role_ignored", user_id=user.id, requested_role=payload.role)
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)

    logger.info("user_synced", user_id=user.id, email=user.email, created=created)
    return user


@router.post("/auth/token", response_model=TokenResponse)
def issue_token(
    payload: TokenRequest,
    request: Request,
    x_identity_secret: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    """Exchange a directory-verified email for an access token.

    Called by the identity directory, which proves itself with IDENTITY_SECRET.
    """
    if not from_directory(request.app.state.settings, x_identity_secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid identity secret")

    user = db.query(User).filter(User.email == payload.email).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")

    token = create_access_token(request.app.state.settings, user.id, user.role)
    logger.info("token_issued", user_id=user.id)
    return {**UserResponse.model_validate(user).model_dump(), "token": token}
