import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Integer,
    Float,
    JSON,
    UniqueConstraint,
    Text,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from ..db import Base
from ..services.time_rules import utcnow, today


def uuid_pk() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))


# =====================
# Tenancy & identity
# =====================

class Organization(Base):
    """Tenant partition: one per country operation"""
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # e.g. 1pwr_lesotho
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    country: Mapped[str] = mapped_column(String(8), default="LS")
    currency: Mapped[str] = mapped_column(String(8), default="LSL")
    timezone_offset: Mapped[int] = mapped_column(Integer, default=2)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class User(Base):
    """Mirror of the legacy identity-provider user directory"""
    __tablename__ = "users"

    id: Mapped[str] = uuid_pk()
    firebase_uid: Mapped[Optional[str]] = mapped_column(String(128), unique=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    name: Mapped[str] = mapped_column(String(255), default="")
    role: Mapped[str] = mapped_column(String(50), default="driver")  # driver|mechanic|fleet_lead|manager|admin
    department: Mapped[str] = mapped_column(String(100), default="")
    organization_id: Mapped[str] = mapped_column(String(64), default="", index=True)
    permission_level: Mapped[int] = mapped_column(Integer, default=5)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# =====================
# Vehicle registry
# =====================

class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho", index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    make: Mapped[str] = mapped_column(String(100), default="")
    model: Mapped[str] = mapped_column(String(100), default="")
    year: Mapped[Optional[int]] = mapped_column(Integer)
    license_plate: Mapped[str] = mapped_column(String(50), default="")
    vin: Mapped[str] = mapped_column(String(100), default="")
    engine_number: Mapped[str] = mapped_column(String(100), default="")
    asset_class: Mapped[str] = mapped_column(String(50), default="light-vehicle")  # light-vehicle|heavy-vehicle|equipment
    home_location: Mapped[str] = mapped_column(String(100), default="HQ")
    current_location: Mapped[str] = mapped_column(String(100), default="HQ")
    status: Mapped[str] = mapped_column(String(50), default="operational", index=True)
    photo_url: Mapped[str] = mapped_column(String(500), default="")
    date_in_service: Mapped[str] = mapped_column(String(32), default="")
    notes: Mapped[str] = mapped_column(Text, default="")
    tracker_imei: Mapped[str] = mapped_column(String(32), default="")
    tracker_provider: Mapped[str] = mapped_column(String(50), default="")
    tracker_sim: Mapped[str] = mapped_column(String(50), default="")
    tracker_model: Mapped[str] = mapped_column(String(50), default="")
    tracker_install_date: Mapped[str] = mapped_column(String(32), default="")
    tracker_status: Mapped[str] = mapped_column(String(32), default="unknown")  # active|inactive|no-signal|not-installed|unknown
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_vehicle_org_code"),
    )


class StatusLog(Base):
    """Generic status change log (vehicles)"""
    __tablename__ = "status_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    old_status: Mapped[Optional[str]] = mapped_column(String(50))
    new_status: Mapped[str] = mapped_column(String(50), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(255), default="")
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_status_log_entity", "entity_type", "entity_id"),
    )


class ReferenceData(Base):
    """Admin-managed dropdown values (sites, mission types, shops)"""
    __tablename__ = "reference_data"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho")
    type: Mapped[str] = mapped_column(String(50), nullable=False)  # site|mission_type|third_party_shop
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    meta: Mapped[str] = mapped_column(Text, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("organization_id", "type", "code", name="uq_reference_data_org_type_code"),
    )


# =====================
# Trips
# =====================

class Trip(Base):
    """Vehicle check-out / check-in. Open while checkin_at is null."""
    __tablename__ = "trips"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho", index=True)
    vehicle_id: Mapped[str] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    driver_id: Mapped[str] = mapped_column(String(36), default="")
    driver_name: Mapped[str] = mapped_column(String(255), default="")
    odo_start: Mapped[int] = mapped_column(Integer, nullable=False)
    odo_end: Mapped[Optional[int]] = mapped_column(Integer)
    departure_location: Mapped[str] = mapped_column(String(100), nullable=False)
    destination: Mapped[str] = mapped_column(String(100), nullable=False)
    arrival_location: Mapped[str] = mapped_column(String(100), default="")
    mission_type: Mapped[str] = mapped_column(String(50), default="other")
    passengers: Mapped[str] = mapped_column(Text, default="")
    load_out: Mapped[str] = mapped_column(Text, default="")
    load_in: Mapped[str] = mapped_column(Text, default="")
    checkout_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    checkin_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    issues_observed: Mapped[str] = mapped_column(Text, default="")
    distance: Mapped[Optional[int]] = mapped_column(Integer)
    source: Mapped[str] = mapped_column(String(50), default="manual")

    vehicle = relationship("Vehicle")
    stops = relationship("TripStop", back_populates="trip", cascade="all, delete-orphan", order_by="TripStop.stop_number")


class TripStop(Base):
    __tablename__ = "trip_stops"

    id: Mapped[str] = uuid_pk()
    trip_id: Mapped[str] = mapped_column(String(36), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    stop_number: Mapped[int] = mapped_column(Integer, default=1)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    arrived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    departed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    odo_reading: Mapped[Optional[int]] = mapped_column(Integer)
    load_out: Mapped[str] = mapped_column(Text, default="")
    load_in: Mapped[str] = mapped_column(Text, default="")
    notes: Mapped[str] = mapped_column(Text, default="")

    trip = relationship("Trip", back_populates="stops")


# =====================
# Inspections
# =====================

class Inspection(Base):
    """Vehicle checklist snapshot; a failing item raises a work order"""
    __tablename__ = "inspections"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho", index=True)
    vehicle_id: Mapped[str] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    inspector_id: Mapped[str] = mapped_column(String(36), default="")
    inspector_name: Mapped[str] = mapped_column(String(255), default="")
    type: Mapped[str] = mapped_column(String(50), default="pre-departure")  # pre-departure|detailed
    items: Mapped[list] = mapped_column(JSON, default=list)  # [{category, item, rating, note}]
    overall_pass: Mapped[bool] = mapped_column(Boolean, default=True)
    source: Mapped[str] = mapped_column(String(50), default="manual")
    source_image_url: Mapped[str] = mapped_column(String(500), default="")
    work_order_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)  # auto-created work order, if any
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    vehicle = relationship("Vehicle")


# =====================
# Work orders
# =====================

class WorkOrder(Base):
    """Maintenance task tracked from report to closure.

    The cost columns are derived from labor, parts and PO links; see
    ``services.work_orders.recalculate_costs``.
    """
    __tablename__ = "work_orders"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho", index=True)
    vehicle_id: Mapped[str] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[str] = mapped_column(String(50), default="corrective")  # corrective|scheduled|inspection-flagged
    priority: Mapped[str] = mapped_column(String(20), default="medium")  # critical|high|medium|low
    status: Mapped[str] = mapped_column(String(50), default="submitted", index=True)
    assigned_to: Mapped[str] = mapped_column(String(255), default="")
    repair_location: Mapped[str] = mapped_column(String(50), default="hq")  # hq|3rd-party|field
    third_party_shop: Mapped[str] = mapped_column(String(255), default="")
    reported_by: Mapped[str] = mapped_column(String(255), default="")
    validated_by: Mapped[str] = mapped_column(String(255), default="")
    closing_inspection_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("inspections.id", ondelete="SET NULL"))
    odo_at_report: Mapped[Optional[int]] = mapped_column(Integer)
    total_labour_hours: Mapped[float] = mapped_column(Float, default=0)
    parts_cost: Mapped[float] = mapped_column(Float, default=0)
    labour_cost: Mapped[float] = mapped_column(Float, default=0)
    third_party_cost: Mapped[float] = mapped_column(Float, default=0)
    total_cost: Mapped[float] = mapped_column(Float, default=0)
    remarks: Mapped[str] = mapped_column(Text, default="")
    downtime_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    downtime_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    vehicle = relationship("Vehicle")
    status_history = relationship("WorkOrderStatusHistory", back_populates="work_order", cascade="all, delete-orphan", order_by="WorkOrderStatusHistory.id")
    labor = relationship("WorkOrderLabor", back_populates="work_order", cascade="all, delete-orphan", order_by="WorkOrderLabor.work_date.desc()")
    po_links = relationship("WorkOrderPOLink", back_populates="work_order", cascade="all, delete-orphan", order_by="WorkOrderPOLink.created_at.desc()")
    parts = relationship("Part", back_populates="work_order", cascade="all, delete-orphan", order_by="Part.created_at")

    __table_args__ = (
        Index("idx_work_order_org_status", "organization_id", "status"),
    )


class WorkOrderStatusHistory(Base):
    """Append-only audit trail of work order status transitions"""
    __tablename__ = "work_order_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    work_order_id: Mapped[str] = mapped_column(String(36), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status: Mapped[Optional[str]] = mapped_column(String(50))
    to_status: Mapped[str] = mapped_column(String(50), nullable=False)
    changed_by_id: Mapped[str] = mapped_column(String(36), default="")
    changed_by_name: Mapped[str] = mapped_column(String(255), default="")
    reason: Mapped[str] = mapped_column(Text, default="")
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    work_order = relationship("WorkOrder", back_populates="status_history")


class WorkOrderLabor(Base):
    __tablename__ = "work_order_labor"

    id: Mapped[str] = uuid_pk()
    work_order_id: Mapped[str] = mapped_column(String(36), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_name: Mapped[str] = mapped_column(String(255), nullable=False)
    worker_id: Mapped[str] = mapped_column(String(36), default="")
    role: Mapped[str] = mapped_column(String(50), default="mechanic")
    hours: Mapped[float] = mapped_column(Float, default=0)
    rate_per_hour: Mapped[float] = mapped_column(Float, default=0)
    description: Mapped[str] = mapped_column(Text, default="")
    work_date: Mapped[date] = mapped_column(Date, default=today, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    work_order = relationship("WorkOrder", back_populates="labor")


class WorkOrderPOLink(Base):
    """Purchase request / purchase order raised for a work order"""
    __tablename__ = "work_order_po_links"

    id: Mapped[str] = uuid_pk()
    work_order_id: Mapped[str] = mapped_column(String(36), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    pr_number: Mapped[str] = mapped_column(String(100), default="")
    po_number: Mapped[str] = mapped_column(String(100), default="")
    vendor: Mapped[str] = mapped_column(String(255), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    amount: Mapped[float] = mapped_column(Float, default=0)
    currency: Mapped[str] = mapped_column(String(8), default="LSL")
    status: Mapped[str] = mapped_column(String(50), default="pending")
    pr_system_url: Mapped[str] = mapped_column(String(500), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    work_order = relationship("WorkOrder", back_populates="po_links")


class Part(Base):
    __tablename__ = "parts"

    id: Mapped[str] = uuid_pk()
    work_order_id: Mapped[str] = mapped_column(String(36), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_cost: Mapped[Optional[float]] = mapped_column(Float)
    supplier: Mapped[str] = mapped_column(String(255), default="")
    pr_status: Mapped[str] = mapped_column(String(50), default="needed")  # needed|pr-submitted|approved|ordered|received
    delivery_eta: Mapped[str] = mapped_column(String(32), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    work_order = relationship("WorkOrder", back_populates="parts")


class WorkOrderProgressUpdate(Base):
    """Progress note posted against a work order"""
    __tablename__ = "work_order_updates"

    id: Mapped[str] = uuid_pk()
    work_order_id: Mapped[str] = mapped_column(String(36), ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    update_type: Mapped[str] = mapped_column(String(50), default="progress")
    note: Mapped[str] = mapped_column(Text, nullable=False)
    posted_by_id: Mapped[str] = mapped_column(String(36), default="")
    posted_by_name: Mapped[str] = mapped_column(String(255), default="")
    has_photos: Mapped[bool] = mapped_column(Boolean, default=False)
    photo_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# =====================
# Field issue reports
# =====================

class FieldIssueReport(Base):
    """Driver-submitted problem report; converts to at most one work order"""
    __tablename__ = "field_issue_reports"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho", index=True)
    vehicle_id: Mapped[str] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    reported_by_id: Mapped[str] = mapped_column(String(36), default="")
    reported_by_name: Mapped[str] = mapped_column(String(255), default="")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    severity: Mapped[str] = mapped_column(String(20), default="medium")  # critical|high|medium|low
    location: Mapped[str] = mapped_column(String(255), default="")
    odometer: Mapped[Optional[int]] = mapped_column(Integer)
    is_driveable: Mapped[bool] = mapped_column(Boolean, default=True)
    photo_count: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="open", index=True)  # open|converted|resolved
    work_order_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("work_orders.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    vehicle = relationship("Vehicle")


# =====================
# Media
# =====================

class MediaAttachment(Base):
    """Uploaded photo/document bound to any entity by (entity_type, entity_id)"""
    __tablename__ = "media_attachments"

    id: Mapped[str] = uuid_pk()
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # field_report|work_order|work_order_update|vehicle|...
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), default="")
    size_bytes: Mapped[int] = mapped_column(Integer, default=0)
    caption: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(50), default="general")
    uploaded_by_id: Mapped[str] = mapped_column(String(36), default="")
    uploaded_by_name: Mapped[str] = mapped_column(String(255), default="")
    # Key of the stored file, relative to the storage root; copies made on
    # field report conversion point at the original file
    storage_key: Mapped[str] = mapped_column(String(500), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_media_entity", "entity_type", "entity_id"),
    )


# =====================
# Tracking reports
# =====================

class VehicleTrackingReport(Base):
    __tablename__ = "vehicle_tracking_reports"

    id: Mapped[str] = uuid_pk()
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False, default="1pwr_lesotho", index=True)
    vehicle_id: Mapped[str] = mapped_column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    report_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_distance_km: Mapped[float] = mapped_column(Float, default=0)
    total_trips: Mapped[int] = mapped_column(Integer, default=0)
    total_driving_hours: Mapped[float] = mapped_column(Float, default=0)
    total_idle_hours: Mapped[float] = mapped_column(Float, default=0)
    max_speed_kmh: Mapped[float] = mapped_column(Float, default=0)
    avg_speed_kmh: Mapped[float] = mapped_column(Float, default=0)
    geofence_violations: Mapped[int] = mapped_column(Integer, default=0)
    harsh_braking_events: Mapped[int] = mapped_column(Integer, default=0)
    harsh_acceleration_events: Mapped[int] = mapped_column(Integer, default=0)
    after_hours_usage_minutes: Mapped[int] = mapped_column(Integer, default=0)
    fuel_consumed_liters: Mapped[float] = mapped_column(Float, default=0)
    start_location: Mapped[str] = mapped_column(String(100), default="")
    end_location: Mapped[str] = mapped_column(String(100), default="")
    report_source: Mapped[str] = mapped_column(String(50), default="manual")
    raw_data: Mapped[dict] = mapped_column(JSON, default=dict)
    notes: Mapped[str] = mapped_column(Text, default="")
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    vehicle = relationship("Vehicle")

    __table_args__ = (
        Index("idx_tracking_report_vehicle_date", "vehicle_id", "report_date"),
    )
