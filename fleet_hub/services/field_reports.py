"""
Field issue reports and their one-time conversion to a work order.
"""

import structlog
from sqlalchemy.orm import Session

from ..errors import AlreadyConvertedError, InvalidInputError, NotFoundError
from ..models.models import FieldIssueReport, WorkOrder
from .media import copy_attachments
from .time_rules import utcnow
from .vehicles import get_vehicle
from .work_orders import create_work_order


logger = structlog.get_logger()


def get_report(db: Session, report_id: str) -> FieldIssueReport:
    report = db.get(FieldIssueReport, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    return report


def convert_to_work_order(
    db: Session,
    report: FieldIssueReport,
    assigned_to: str = "",
    repair_location: str = "hq",
) -> WorkOrder:
    """Create the corrective work order for a report. A report converts once."""
    if report.work_order_id:
        raise AlreadyConvertedError(
            "Already converted to work order",
            extra={"workOrderId": report.work_order_id},
        )

    vehicle = get_vehicle(db, report.vehicle_id)
    driveable = "Vehicle is driveable." if report.is_driveable else "Vehicle is NOT driveable."
    wo = create_work_order(
        db,
        vehicle,
        report.title,
        organization_id=report.organization_id,
        status="submitted",
        changed_by_name="system",
        reason=f"Created from field report by {report.reported_by_name}",
        description=(
            f"{report.description}\n\n"
            f"Field report from {report.reported_by_name} at {report.location}. {driveable}"
        ),
        type="corrective",
        priority=report.severity or "medium",
        assigned_to=assigned_to or "",
        repair_location=repair_location or "hq",
        reported_by=report.reported_by_name,
        odo_at_report=report.odometer,
        remarks=f"Auto-created from field report #{report.id[:8]}",
    )

    copy_attachments(
        db, "field_report", report.id, "work_order", wo.id,
        caption="From field report",
        category="damage",
    )

    report.status = "converted"
    report.work_order_id = wo.id
    logger.info("field_report_converted", report_id=report.id, work_order_id=wo.id)
    return wo


def resolve_report(db: Session, report: FieldIssueReport) -> FieldIssueReport:
    if report.work_order_id:
        raise AlreadyConvertedError(
            "Report was converted to a work order and cannot be resolved directly",
            extra={"workOrderId": report.work_order_id},
        )
    if report.status == "resolved":
        raise InvalidInputError("Report is already resolved")
    report.status = "resolved"
    report.resolved_at = utcnow()
    logger.info("field_report_resolved", report_id=report.id)
    return report
