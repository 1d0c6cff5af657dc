"""
Inspection submission.
A checklist with any failing item raises an inspection-flagged work order
in the same transaction.
"""
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models.models import Inspection, Vehicle, WorkOrder
from .time_rules import utcnow
from .work_orders import create_work_order


logger = structlog.get_logger()


def get_inspection(db: Session, inspection_id: str) -> Inspection:
    inspection = db.get(Inspection, inspection_id)
    if inspection is None:
        raise NotFoundError("Inspection not found")
    return inspection


def failing_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [i for i in items if i.get("rating") == "fail"]


def create_inspection(
    db: Session,
    vehicle: Vehicle,
    items: List[Dict[str, Any]],
    *,
    organization_id: Optional[str] = None,
    inspector_id: str = "",
    inspector_name: str = "",
    type: str = "pre-departure",
    source: str = "manual",
    source_image_url: str = "",
) -> Inspection:
    failed = failing_items(items)
    inspection = Inspection(
        organization_id=organization_id or vehicle.organization_id,
        vehicle_id=vehicle.id,
        inspector_id=inspector_id,
        inspector_name=inspector_name,
        type=type,
        items=items,
        overall_pass=not failed,
        source=source,
        source_image_url=source_image_url,
        created_at=utcnow(),
    )
    db.add(inspection)
    db.flush()

    if failed:
        wo = _raise_work_order(db, vehicle, inspection, failed)
        inspection.work_order_id = wo.id
        logger.info(
            "inspection_failed",
            inspection_id=inspection.id,
            vehicle_id=vehicle.id,
            failed_items=len(failed),
            work_order_id=wo.id,
        )
    else:
        logger.info("inspection_passed", inspection_id=inspection.id, vehicle_id=vehicle.id)
    return inspection


def _raise_work_order(db: Session, vehicle: Vehicle, inspection: Inspection, failed) -> WorkOrder:
    fail_desc = ", ".join(f"{i.get('category', '')}: {i.get('item', '')}" for i in failed)
    return create_work_order(
        db,
        vehicle,
        f"Inspection failure: {fail_desc[:80]}",
        organization_id=inspection.organization_id,
        status="submitted",
        changed_by_id=inspection.inspector_id,
        changed_by_name=inspection.inspector_name or "system",
        reason=f"Auto-created from inspection {inspection.id}",
        description=f"Auto-created from inspection {inspection.id}. Failed items: {fail_desc}",
        type="inspection-flagged",
        priority="high",
        reported_by=inspection.inspector_name,
    )
