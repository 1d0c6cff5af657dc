from .models import (  # noqa: F401
    Organization,
    User,
    Vehicle,
    StatusLog,
    ReferenceData,
    Trip,
    TripStop,
    Inspection,
    WorkOrder,
    WorkOrderStatusHistory,
    WorkOrderLabor,
    WorkOrderPOLink,
    Part,
    WorkOrderProgressUpdate,
    FieldIssueReport,
    MediaAttachment,
    VehicleTrackingReport,
)
