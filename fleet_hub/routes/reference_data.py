import json
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_actor
from ..db import get_db
from ..errors import ConflictError, InvalidInputError, NotFoundError
from ..models.models import ReferenceData
from ..schemas.common import MessageResponse
from ..schemas.reference_data import (
    ReferenceDataCreate,
    ReferenceDataUpdate,
    ReferenceDataResponse,
)
from ..services.time_rules import utcnow
from .deps import get_org, default_org


router = APIRouter(prefix="/api/reference-data", tags=["reference-data"])
logger = structlog.get_logger()


def _ensure_unique(db: Session, org: str, ref_type: str, code: str, exclude_id: Optional[str] = None) -> None:
    q = db.query(ReferenceData.id).filter(
        ReferenceData.organization_id == org,
        ReferenceData.type == ref_type,
        ReferenceData.code == code,
    )
    if exclude_id:
        q = q.filter(ReferenceData.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Item with this code already exists for this org/type")


@router.get("", response_model=List[ReferenceDataResponse])
def list_reference_data(
    org: str = Depends(get_org),
    type: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Dropdown values (sites, mission types, shops) ordered for display"""
    q = db.query(ReferenceData).filter(ReferenceData.organization_id == org)
    if type:
        q = q.filter(ReferenceData.type == type)
    return q.order_by(ReferenceData.type, ReferenceData.sort_order, ReferenceData.label).all()


@router.post("", response_model=ReferenceDataResponse, status_code=201)
def create_reference_data(
    payload: ReferenceDataCreate,
    request: Request,
    db: Session = Depends(get_db),
    _actor=Depends(get_actor),
):
    org = default_org(request, payload.organization_id)
    code = payload.code.strip()
    _ensure_unique(db, org, payload.type.value, code)
    now = utcnow()
    item = ReferenceData(
        organization_id=org,
        type=payload.type.value,
        code=code,
        label=payload.label.strip(),
        sort_order=payload.sort_order,
        meta=json.dumps(payload.meta),
        created_at=now,
        updated_at=now,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("reference_data_created", id=item.id, type=item.type, code=item.code, organization_id=org)
    return item


@router.patch("/{item_id}", response_model=ReferenceDataResponse)
def update_reference_data(
    item_id: str,
    payload: ReferenceDataUpdate,
    db: Session = Depends(get_db),
    _actor=Depends(get_actor),
):
    item = db.get(ReferenceData, item_id)
    if item is None:
        raise NotFoundError("Not found")
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise InvalidInputError("No fields to update")

    if "code" in changes:
        changes["code"] = changes["code"].strip()
        _ensure_unique(db, item.organization_id, item.type, changes["code"], exclude_id=item.id)
    if "meta" in changes:
        changes["meta"] = json.dumps(changes["meta"])
    for key, value in changes.items():
        setattr(item, key, value)
    item.updated_at = utcnow()
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}", response_model=MessageResponse)
def delete_reference_data(
    item_id: str,
    db: Session = Depends(get_db),
    _actor=Depends(get_actor),
):
    item = db.get(ReferenceData, item_id)
    if item is None:
        raise NotFoundError("Not found")
    db.delete(item)
    db.commit()
    logger.info("reference_data_deleted", id=item_id)
    return {"success": True}
