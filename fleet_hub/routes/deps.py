from typing import Optional

from fastapi import Query, Request

from ..services.tracker_client import TrackerClient, tracker_client_from_settings
from ..storage.local_provider import LocalStorageProvider
from ..storage.provider import StorageProvider


def get_org(request: Request, org: Optional[str] = Query(None)) -> str:
    """Organization filter for list endpoints (``?org=``), defaulting to the configured one."""
    return org or request.app.state.settings.default_organization_id


def default_org(request: Request, org: Optional[str]) -> str:
    return org or request.app.state.settings.default_organization_id


def get_storage(request: Request) -> StorageProvider:
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        storage = LocalStorageProvider(request.app.state.settings.upload_dir)
        request.app.state.storage = storage
    return storage


def get_tracker(request: Request) -> TrackerClient:
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        tracker = tracker_client_from_settings(request.app.state.settings)
        request.app.state.tracker = tracker
    return tracker
