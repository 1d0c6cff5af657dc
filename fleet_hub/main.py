from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import Settings, settings as default_settings
from .db import make_engine, make_session_factory
from .errors import register_error_handlers
from .logging import setup_logging, RequestIdMiddleware
from .routes.tenancy import router as tenancy_router
from .routes.vehicles import router as vehicles_router
from .routes.trips import router as trips_router
from .routes.inspections import router as inspections_router
from .routes.work_orders import router as work_orders_router
from .routes.field_reports import router as field_reports_router
from .routes.media import router as media_router
from .routes.reference_data import router as reference_data_router
from .routes.reports import router as reports_router
from .services.seed import init_db


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.log_level, settings.log_json)
    app = FastAPI(title=settings.app_name)

    # Database handle lives on the app, one session per request via get_db
    engine = make_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.enable_rate_limit:
        limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
        app.add_middleware(SlowAPIMiddleware)

    register_error_handlers(app)

    # Routers
    app.include_router(tenancy_router)
    app.include_router(vehicles_router)
    app.include_router(trips_router)
    app.include_router(inspections_router)
    app.include_router(work_orders_router)
    app.include_router(field_reports_router)
    app.include_router(media_router)
    app.include_router(reference_data_router)
    app.include_router(reports_router)

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.environment}

    @app.on_event("startup")
    def _startup():
        if settings.auto_create_db:
            init_db(engine, app.state.session_factory)
        structlog.get_logger().info(
            "startup_complete",
            database=engine.url.render_as_string(hide_password=True),
            auto_create_db=settings.auto_create_db,
        )

    return app


app = create_app(default_settings)


def run() -> None:
    import uvicorn

    uvicorn.run("fleet_hub.main:app", host=default_settings.host, port=default_settings.port)
