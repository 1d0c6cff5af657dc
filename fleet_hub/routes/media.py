from typing import List

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..auth.security import get_actor, actor_name, actor_id
from ..db import get_db
from ..errors import NotFoundError
from ..schemas.common import MessageResponse
from ..schemas.media import MediaResponse
from ..services import media as media_service
from ..storage.local_provider import media_key
from ..storage.provider import StorageProvider
from .deps import get_storage


router = APIRouter(prefix="/api/media", tags=["media"])


@router.get("", response_model=List[MediaResponse])
def list_media(
    entity_type: str = Query(..., alias="entityType", min_length=1),
    entity_id: str = Query(..., alias="entityId", min_length=1),
    db: Session = Depends(get_db),
):
    return media_service.list_media(db, entity_type, entity_id)


@router.post("", response_model=MediaResponse, status_code=201)
def upload_media(
    request: Request,
    file: UploadFile = File(...),
    entity_type: str = Form(..., alias="entityType", min_length=1),
    entity_id: str = Form(..., alias="entityId", min_length=1),
    caption: str = Form(""),
    category: str = Form("general"),
    uploaded_by_id: str = Form("", alias="uploadedById"),
    uploaded_by_name: str = Form("", alias="uploadedByName"),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    actor=Depends(get_actor),
):
    media = media_service.store_upload(
        db, storage, file, entity_type, entity_id,
        max_bytes=request.app.state.settings.max_upload_bytes,
        caption=caption,
        category=category,
        uploaded_by_id=actor_id(actor, uploaded_by_id),
        uploaded_by_name=actor_name(actor, uploaded_by_name),
    )
    media_service.commit_with_files(db, storage, [media])
    return media


@router.get("/{media_id}/file")
def download_media(
    media_id: str,
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
):
    media = media_service.get_media(db, media_id)
    path = storage.path_for(media.storage_key or media_key(media.entity_type, media.entity_id, media.file_name))
    if path is None:
        raise NotFoundError("File not found")
    return FileResponse(path, media_type=media.mime_type or None, filename=media.original_name)


@router.delete("", response_model=MessageResponse)
def delete_media(
    media_id: str = Query(..., alias="id", min_length=1),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    _actor=Depends(get_actor),
):
    media_service.delete_media(db, storage, media_service.get_media(db, media_id))
    db.commit()
    return {"success": True}
