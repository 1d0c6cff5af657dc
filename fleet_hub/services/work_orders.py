"""
Work order lifecycle.

Owns the status transition table, the append-only status history and the
cost roll-up from labor, parts and PO links. Callers commit.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..errors import (
    NotFoundError,
    InvalidTransitionError,
    ClosingInspectionRequiredError,
)
from ..models.models import (
    Inspection,
    Part,
    Vehicle,
    WorkOrder,
    WorkOrderLabor,
    WorkOrderPOLink,
    WorkOrderStatusHistory,
)
from .time_rules import utcnow, to_naive_utc
from .vehicles import set_vehicle_status


logger = structlog.get_logger()


TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "submitted": ("queued", "rejected", "cancelled"),
    "queued": ("in-progress", "cancelled"),
    "in-progress": ("awaiting-parts", "completed", "cancelled"),
    "awaiting-parts": ("in-progress", "cancelled"),
    "completed": ("closed", "return-repair", "rejected"),
    "closed": ("return-repair",),
    "return-repair": ("queued", "in-progress"),
    "cancelled": (),
    "rejected": ("submitted",),
}

# Statuses that no longer count as open work
CLOSED_STATUSES = ("completed", "closed", "cancelled", "rejected")

PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def allowed_transitions(status: str) -> Tuple[str, ...]:
    return TRANSITIONS.get(status, ())


def can_transition(current: str, target: str) -> bool:
    return target in allowed_transitions(current)


def get_work_order(db: Session, work_order_id: str) -> WorkOrder:
    wo = db.get(WorkOrder, work_order_id)
    if wo is None:
        raise NotFoundError("Work order not found")
    return wo


def record_history(
    db: Session,
    work_order: WorkOrder,
    from_status: Optional[str],
    to_status: str,
    changed_by_id: str = "",
    changed_by_name: str = "",
    reason: str = "",
    changed_at: Optional[datetime] = None,
) -> WorkOrderStatusHistory:
    row = WorkOrderStatusHistory(
        work_order_id=work_order.id,
        from_status=from_status,
        to_status=to_status,
        changed_by_id=changed_by_id or "",
        changed_by_name=changed_by_name or "",
        reason=reason or "",
        changed_at=changed_at or utcnow(),
    )
    db.add(row)
    return row


def create_work_order(
    db: Session,
    vehicle: Vehicle,
    title: str,
    *,
    organization_id: Optional[str] = None,
    status: str = "submitted",
    changed_by_id: str = "",
    changed_by_name: str = "",
    reason: str = "Work order created",
    **fields,
) -> WorkOrder:
    """Insert a work order together with its initial history row.

    Extra keyword arguments are passed straight to the model (description,
    type, priority, repair_location, ...). Cost columns start at zero.
    """
    now = utcnow()
    downtime_start = to_naive_utc(fields.pop("downtime_start", None)) or now
    wo = WorkOrder(
        organization_id=organization_id or vehicle.organization_id,
        vehicle_id=vehicle.id,
        title=title,
        status=status,
        downtime_start=downtime_start,
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(wo)
    db.flush()
    record_history(
        db, wo, None, status,
        changed_by_id=changed_by_id,
        changed_by_name=changed_by_name,
        reason=reason,
        changed_at=now,
    )
    logger.info(
        "work_order_created",
        work_order_id=wo.id,
        vehicle_id=vehicle.id,
        type=wo.type,
        priority=wo.priority,
        status=status,
    )
    return wo


def _vehicle_status_for(work_order: WorkOrder) -> Optional[str]:
    if work_order.status == "in-progress":
        if work_order.repair_location == "3rd-party":
            return "maintenance-3rdparty"
        return "maintenance-hq"
    if work_order.status == "awaiting-parts":
        return "awaiting-parts"
    if work_order.status in ("completed", "closed", "cancelled"):
        return "operational"
    return None


def transition(
    db: Session,
    work_order: WorkOrder,
    new_status: str,
    *,
    changed_by_id: str = "",
    changed_by_name: str = "",
    reason: str = "",
    closing_inspection_id: Optional[str] = None,
    downtime_end: Optional[datetime] = None,
) -> WorkOrder:
    """Move a work order to ``new_status``.

    Validates against ``TRANSITIONS`` and the closing-inspection rule before
    touching anything, so a rejected transition leaves the order unchanged.
    """
    current = work_order.status
    allowed = allowed_transitions(current)
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition from '{current}' to '{new_status}'. "
            f"Allowed: {', '.join(allowed) or 'none'}"
        )

    if new_status == "closed":
        inspection_id = closing_inspection_id or work_order.closing_inspection_id
        if not inspection_id:
            raise ClosingInspectionRequiredError(
                "Closing a work order requires a closing inspection. Provide closingInspectionId."
            )
        if db.get(Inspection, inspection_id) is None:
            raise ClosingInspectionRequiredError("Closing inspection not found.")
        work_order.closing_inspection_id = inspection_id

    now = utcnow()
    if new_status in ("completed", "closed"):
        work_order.downtime_end = to_naive_utc(downtime_end) or now

    work_order.status = new_status
    work_order.updated_at = now
    record_history(
        db, work_order, current, new_status,
        changed_by_id=changed_by_id,
        changed_by_name=changed_by_name,
        reason=reason,
        changed_at=now,
    )

    vehicle_status = _vehicle_status_for(work_order)
    if vehicle_status:
        vehicle = db.get(Vehicle, work_order.vehicle_id)
        if vehicle is not None:
            set_vehicle_status(db, vehicle, vehicle_status, changed_by=changed_by_name or "system")

    logger.info(
        "work_order_transition",
        work_order_id=work_order.id,
        from_status=current,
        to_status=new_status,
        changed_by=changed_by_name,
    )
    return work_order


def recalculate_costs(db: Session, work_order: WorkOrder) -> WorkOrder:
    """Re-derive the cost columns from the child rows. Idempotent."""
    db.flush()
    hours, labour = db.query(
        func.coalesce(func.sum(WorkOrderLabor.hours), 0.0),
        func.coalesce(func.sum(WorkOrderLabor.hours * WorkOrderLabor.rate_per_hour), 0.0),
    ).filter(WorkOrderLabor.work_order_id == work_order.id).one()

    parts = db.query(
        func.coalesce(func.sum(Part.quantity * func.coalesce(Part.unit_cost, 0.0)), 0.0)
    ).filter(Part.work_order_id == work_order.id).scalar()

    third_party = db.query(
        func.coalesce(func.sum(WorkOrderPOLink.amount), 0.0)
    ).filter(WorkOrderPOLink.work_order_id == work_order.id).scalar()

    work_order.total_labour_hours = float(hours)
    work_order.labour_cost = float(labour)
    work_order.parts_cost = float(parts)
    work_order.third_party_cost = float(third_party)
    work_order.total_cost = work_order.parts_cost + work_order.labour_cost + work_order.third_party_cost
    work_order.updated_at = utcnow()
    return work_order


def priority_order():
    """ORDER BY expression ranking critical first."""
    return case(PRIORITY_RANK, value=WorkOrder.priority, else_=3)


def history_for(db: Session, work_order_id: str) -> List[WorkOrderStatusHistory]:
    return (
        db.query(WorkOrderStatusHistory)
        .filter(WorkOrderStatusHistory.work_order_id == work_order_id)
        .order_by(WorkOrderStatusHistory.changed_at.asc(), WorkOrderStatusHistory.id.asc())
        .all()
    )
