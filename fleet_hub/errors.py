"""
Domain errors.

Services raise these instead of ``HTTPException`` so the same rules can be
exercised without the HTTP layer; ``register_error_handlers`` maps them to
JSON responses of the form ``{"detail": ..., "error": ...}``.
"""
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class FleetError(Exception):
    status_code = 400
    kind = "error"

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class NotFoundError(FleetError):
    status_code = 404
    kind = "not_found"


class InvalidInputError(FleetError):
    kind = "invalid_input"


class ConflictError(FleetError):
    status_code = 409
    kind = "conflict"


class InvalidTransitionError(FleetError):
    kind = "invalid_transition"


class ClosingInspectionRequiredError(FleetError):
    kind = "closing_inspection_required"


class AlreadyConvertedError(FleetError):
    kind = "already_converted"


async def _fleet_error_handler(request: Request, exc: FleetError) -> JSONResponse:
    structlog.get_logger().info(
        "request_rejected",
        path=request.url.path,
        error=exc.kind,
        detail=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind, **exc.extra},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FleetError, _fleet_error_handler)
