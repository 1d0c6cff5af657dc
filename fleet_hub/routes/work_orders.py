from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session

from ..auth.security import get_actor, actor_name, actor_id
from ..db import get_db
from ..errors import InvalidInputError, NotFoundError
from ..models.models import (
    Inspection,
    Part,
    User,
    Vehicle,
    WorkOrder,
    WorkOrderLabor,
    WorkOrderPOLink,
    WorkOrderProgressUpdate,
)
from ..schemas.common import MessageResponse
from ..schemas.work_orders import (
    WorkOrderCreate,
    WorkOrderUpdate,
    WorkOrderResponse,
    WorkOrderDetailResponse,
    StatusHistoryResponse,
    LaborCreate,
    LaborResponse,
    POLinkCreate,
    POLinkResponse,
    PartCreate,
    PartUpdate,
    PartResponse,
    ProgressUpdateResponse,
)
from ..services import media as media_service
from ..services import work_orders as wo_service
from ..services.reports import with_vehicle
from ..services.time_rules import days_open, today, utcnow, to_naive_utc
from ..services.vehicles import get_vehicle
from ..storage.provider import StorageProvider
from .deps import get_org, get_storage, default_org


router = APIRouter(prefix="/api/work-orders", tags=["work-orders"])
logger = structlog.get_logger()

# Keys of WorkOrderUpdate that describe the transition rather than the order
_TRANSITION_META = {"changed_by_id", "changed_by_name", "reason"}


def _work_order_out(db: Session, wo: WorkOrder) -> dict:
    return with_vehicle(wo, db.get(Vehicle, wo.vehicle_id))


def _child_rows(db: Session, model, work_order_id: str, *order_by):
    return db.query(model).filter(model.work_order_id == work_order_id).order_by(*order_by).all()


# ---------- WORK ORDERS ----------
@router.get("", response_model=List[WorkOrderResponse])
def list_work_orders(
    org: str = Depends(get_org),
    status: Optional[str] = None,
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    db: Session = Depends(get_db),
):
    """Work orders by priority (critical first), then newest"""
    q = (
        db.query(WorkOrder, Vehicle)
        .join(Vehicle, WorkOrder.vehicle_id == Vehicle.id)
        .filter(WorkOrder.organization_id == org)
    )
    if status:
        q = q.filter(WorkOrder.status == status)
    if vehicle_id:
        q = q.filter(WorkOrder.vehicle_id == vehicle_id)
    rows = q.order_by(wo_service.priority_order(), WorkOrder.created_at.desc()).all()
    return [with_vehicle(wo, v) for wo, v in rows]


@router.post("", response_model=WorkOrderResponse, status_code=201)
def create_work_order(
    payload: WorkOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_actor),
):
    vehicle = get_vehicle(db, payload.vehicle_id)
    fields = payload.model_dump(
        exclude={"organization_id", "vehicle_id", "title", "status", "changed_by_id", "changed_by_name"},
        mode="json",
    )
    fields["downtime_start"] = payload.downtime_start
    fields["reported_by"] = actor_name(actor, payload.reported_by)
    wo = wo_service.create_work_order(
        db,
        vehicle,
        payload.title,
        organization_id=default_org(request, payload.organization_id),
        status=payload.status.value,
        changed_by_id=actor_id(actor, payload.changed_by_id),
        changed_by_name=actor_name(actor, payload.changed_by_name or payload.reported_by),
        **fields,
    )
    db.commit()
    return _work_order_out(db, wo)


@router.get("/{work_order_id}", response_model=WorkOrderDetailResponse)
def get_work_order(work_order_id: str, db: Session = Depends(get_db)):
    """Work order with days open, status history, labor, PO links and parts"""
    wo = wo_service.get_work_order(db, work_order_id)
    data = _work_order_out(db, wo)
    data["days_open"] = days_open(wo.downtime_start, wo.downtime_end)
    data["status_history"] = wo_service.history_for(db, wo.id)
    data["labor"] = _child_rows(db, WorkOrderLabor, wo.id, WorkOrderLabor.work_date.desc(), WorkOrderLabor.created_at.desc())
    data["po_links"] = _child_rows(db, WorkOrderPOLink, wo.id, WorkOrderPOLink.created_at.desc())
    data["parts"] = _child_rows(db, Part, wo.id, Part.created_at.asc())
    return data


@router.patch("/{work_order_id}", response_model=WorkOrderResponse)
def update_work_order(
    work_order_id: str,
    payload: WorkOrderUpdate,
    db: Session = Depends(get_db),
    actor: Optional[User] = Depends(get_actor),
):
    """Edit a work order; a changed ``status`` goes through the transition rules"""
    wo = wo_service.get_work_order(db, work_order_id)
    changes = payload.model_dump(exclude_unset=True, mode="json")
    for key in _TRANSITION_META:
        changes.pop(key, None)
    if not changes:
        raise InvalidInputError("No fields to update")

    new_status = changes.pop("status", None)
    closing_inspection_id = changes.pop("closing_inspection_id", None)
    downtime_end = to_naive_utc(payload.downtime_end) if "downtime_end" in changes else None
    changes.pop("downtime_end", None)
    if "downtime_start" in changes:
        changes["downtime_start"] = to_naive_utc(payload.downtime_start)

    for key, value in changes.items():
        if value is None and key in ("title", "downtime_start"):
            continue
        setattr(wo, key, value)

    if new_status and new_status != wo.status:
        wo_service.transition(
            db,
            wo,
            new_status,
            changed_by_id=actor_id(actor, payload.changed_by_id),
            changed_by_name=actor_name(actor, payload.changed_by_name),
            reason=payload.reason or "",
            closing_inspection_id=closing_inspection_id,
            downtime_end=downtime_end,
        )
    else:
        if closing_inspection_id is not None:
            if db.get(Inspection, closing_inspection_id) is None:
                raise InvalidInputError("Closing inspection not found.")
            wo.closing_inspection_id = closing_inspection_id
        if downtime_end is not None:
            wo.downtime_end = downtime_end

    wo_service.recalculate_costs(db, wo)
    db.commit()
    return _work_order_out(db, wo)


@router.get("/{work_order_id}/history", response_model=List[StatusHistoryResponse])
def work_order_history(work_order_id: str, db: Session = Depends(get_db)):
    wo_service.get_work_order(db, work_order_id)
    return wo_service.history_for(db, work_order_id)


# ---------- LABOR ----------
@router.get("/{work_order_id}/labor", response_model=List[LaborResponse])
def list_labor(work_order_id: str, db: Session = Depends(get_db)):
    wo_service.get_work_order(db, work_order_id)
    return _child_rows(db, WorkOrderLabor, work_order_id, WorkOrderLabor.work_date.desc(), WorkOrderLabor.created_at.desc())


@router.post("/{work_order_id}/labor", response_model=LaborResponse, status_code=201)
def add_labor(
    work_order_id: str,
    payload: LaborCreate,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    entry = WorkOrderLabor(
        work_order_id=wo.id,
        worker_name=payload.worker_name,
        worker_id=payload.worker_id,
        role=payload.role,
        hours=payload.hours,
        rate_per_hour=payload.rate_per_hour,
        description=payload.description,
        work_date=payload.work_date or today(),
        created_at=utcnow(),
    )
    db.add(entry)
    wo_service.recalculate_costs(db, wo)
    db.commit()
    logger.info("labor_logged", work_order_id=wo.id, worker=entry.worker_name, hours=entry.hours)
    return entry


@router.delete("/{work_order_id}/labor/{labor_id}", response_model=MessageResponse)
def delete_labor(
    work_order_id: str,
    labor_id: str,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    entry = db.get(WorkOrderLabor, labor_id)
    if entry is None or entry.work_order_id != wo.id:
        raise NotFoundError("Labor entry not found")
    db.delete(entry)
    wo_service.recalculate_costs(db, wo)
    db.commit()
    return {"success": True}


# ---------- PO LINKS ----------
@router.get("/{work_order_id}/po-links", response_model=List[POLinkResponse])
def list_po_links(work_order_id: str, db: Session = Depends(get_db)):
    wo_service.get_work_order(db, work_order_id)
    return _child_rows(db, WorkOrderPOLink, work_order_id, WorkOrderPOLink.created_at.desc())


@router.post("/{work_order_id}/po-links", response_model=POLinkResponse, status_code=201)
def add_po_link(
    work_order_id: str,
    payload: POLinkCreate,
    request: Request,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    data = payload.model_dump()
    data["pr_system_url"] = payload.pr_system_url or request.app.state.settings.pr_system_url
    link = WorkOrderPOLink(work_order_id=wo.id, created_at=utcnow(), **data)
    db.add(link)
    wo_service.recalculate_costs(db, wo)
    db.commit()
    logger.info("po_link_added", work_order_id=wo.id, amount=link.amount, currency=link.currency)
    return link


@router.delete("/{work_order_id}/po-links/{link_id}", response_model=MessageResponse)
def delete_po_link(
    work_order_id: str,
    link_id: str,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    link = db.get(WorkOrderPOLink, link_id)
    if link is None or link.work_order_id != wo.id:
        raise NotFoundError("PO link not found")
    db.delete(link)
    wo_service.recalculate_costs(db, wo)
    db.commit()
    return {"success": True}


# ---------- PARTS ----------
def _get_part(db: Session, wo: WorkOrder, part_id: str) -> Part:
    part = db.get(Part, part_id)
    if part is None or part.work_order_id != wo.id:
        raise NotFoundError("Part not found")
    return part


@router.get("/{work_order_id}/parts", response_model=List[PartResponse])
def list_parts(work_order_id: str, db: Session = Depends(get_db)):
    wo_service.get_work_order(db, work_order_id)
    return _child_rows(db, Part, work_order_id, Part.created_at.asc())


@router.post("/{work_order_id}/parts", response_model=PartResponse, status_code=201)
def add_part(
    work_order_id: str,
    payload: PartCreate,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    part = Part(work_order_id=wo.id, created_at=utcnow(), **payload.model_dump(mode="json"))
    db.add(part)
    wo_service.recalculate_costs(db, wo)
    db.commit()
    return part


@router.patch("/{work_order_id}/parts/{part_id}", response_model=PartResponse)
def update_part(
    work_order_id: str,
    part_id: str,
    payload: PartUpdate,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    part = _get_part(db, wo, part_id)
    changes = payload.model_dump(exclude_unset=True, mode="json")
    if not changes:
        raise InvalidInputError("No fields to update")
    for key, value in changes.items():
        if value is None and key not in ("unit_cost",):
            continue
        setattr(part, key, value)
    wo_service.recalculate_costs(db, wo)
    db.commit()
    return part


@router.delete("/{work_order_id}/parts/{part_id}", response_model=MessageResponse)
def delete_part(
    work_order_id: str,
    part_id: str,
    db: Session = Depends(get_db),
    _actor: Optional[User] = Depends(get_actor),
):
    wo = wo_service.get_work_order(db, work_order_id)
    db.delete(_get_part(db, wo, part_id))
    wo_service.recalculate_costs(db, wo)
    db.commit()
    return {"success": True}


# ---------- PROGRESS UPDATES ----------
def _update_out(db: Session, update: WorkOrderProgressUpdate) -> dict:
    data = {c.key: getattr(update, c.key) for c in WorkOrderProgressUpdate.__table__.columns}
    data["photos"] = [
        {c.key: getattr(m, c.key) for c in m.__table__.columns}
        for m in media_service.list_media(db, "work_order_update", update.id, newest_first=False)
    ]
    return data


@router.get("/{work_order_id}/updates", response_model=List[ProgressUpdateResponse])
def list_progress_updates(work_order_id: str, db: Session = Depends(get_db)):
    wo_service.get_work_order(db, work_order_id)
    updates = _child_rows(db, WorkOrderProgressUpdate, work_order_id, WorkOrderProgressUpdate.created_at.desc())
    return [_update_out(db, u) for u in updates]


@router.post("/{work_order_id}/updates", response_model=ProgressUpdateResponse, status_code=201)
def post_progress_update(
    work_order_id: str,
    request: Request,
    note: str = Form(""),
    update_type: str = Form("progress", alias="updateType"),
    posted_by_id: str = Form("", alias="postedById"),
    posted_by_name: str = Form("", alias="postedByName"),
    photos: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    actor: Optional[User] = Depends(get_actor),
):
    """Post a progress note with optional photos (multipart form)"""
    wo = wo_service.get_work_order(db, work_order_id)
    if not note.strip():
        raise InvalidInputError("Note is required")

    update = WorkOrderProgressUpdate(
        work_order_id=wo.id,
        update_type=update_type or "progress",
        note=note,
        posted_by_id=actor_id(actor, posted_by_id),
        posted_by_name=actor_name(actor, posted_by_name),
        created_at=utcnow(),
    )
    db.add(update)
    db.flush()
    stored = media_service.store_uploads(
        db, storage, photos, "work_order_update", update.id,
        max_bytes=request.app.state.settings.max_upload_bytes,
        category="progress",
        uploaded_by_id=update.posted_by_id,
        uploaded_by_name=update.posted_by_name,
    )
    update.photo_count = len(stored)
    update.has_photos = bool(stored)
    media_service.commit_with_files(db, storage, stored)
    logger.info("work_order_update_posted", work_order_id=wo.id, update_id=update.id, photos=len(stored))
    return _update_out(db, update)
