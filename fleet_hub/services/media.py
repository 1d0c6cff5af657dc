"""
Media attachments bound to any entity by (entity_type, entity_id).
"""
import os
import uuid
from typing import List, Optional

import structlog
from fastapi import UploadFile
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, NotFoundError
from ..models.models import MediaAttachment
from ..storage.local_provider import media_key
from ..storage.provider import StorageProvider
from .time_rules import utcnow


logger = structlog.get_logger()


def format_limit(max_bytes: int) -> str:
    if max_bytes >= 1024 * 1024:
        return f"{max_bytes // (1024 * 1024)}MB"
    if max_bytes >= 1024:
        return f"{max_bytes // 1024}KB"
    return f"{max_bytes} bytes"


def list_media(db: Session, entity_type: str, entity_id: str, newest_first: bool = True) -> List[MediaAttachment]:
    order = MediaAttachment.created_at.desc() if newest_first else MediaAttachment.created_at.asc()
    return (
        db.query(MediaAttachment)
        .filter(MediaAttachment.entity_type == entity_type, MediaAttachment.entity_id == entity_id)
        .order_by(order)
        .all()
    )


def get_media(db: Session, media_id: str) -> MediaAttachment:
    media = db.get(MediaAttachment, media_id)
    if media is None:
        raise NotFoundError("Media not found")
    return media


def store_upload(
    db: Session,
    storage: StorageProvider,
    upload: UploadFile,
    entity_type: str,
    entity_id: str,
    *,
    max_bytes: int,
    caption: str = "",
    category: str = "general",
    uploaded_by_id: str = "",
    uploaded_by_name: str = "",
) -> MediaAttachment:
    if upload.size is not None and upload.size > max_bytes:
        raise InvalidInputError(f"File too large. Max {format_limit(max_bytes)}.")

    media_id = str(uuid.uuid4())
    original_name = upload.filename or "upload"
    ext = os.path.splitext(original_name)[1]
    file_name = f"{media_id}{ext}"
    key = media_key(entity_type, entity_id, file_name)

    size = storage.save(key, upload.file)
    if size > max_bytes:
        storage.delete(key)
        raise InvalidInputError(f"File too large. Max {format_limit(max_bytes)}.")

    media = MediaAttachment(
        id=media_id,
        entity_type=entity_type,
        entity_id=entity_id,
        file_name=file_name,
        original_name=original_name,
        mime_type=upload.content_type or "",
        size_bytes=size,
        caption=caption or "",
        category=category or "general",
        uploaded_by_id=uploaded_by_id or "",
        uploaded_by_name=uploaded_by_name or "",
        storage_key=key,
        created_at=utcnow(),
    )
    db.add(media)
    logger.info("media_uploaded", media_id=media_id, entity_type=entity_type, entity_id=entity_id, size=size)
    return media


def store_uploads(
    db: Session,
    storage: StorageProvider,
    uploads: Optional[List[UploadFile]],
    entity_type: str,
    entity_id: str,
    **kwargs,
) -> List[MediaAttachment]:
    """Store every non-empty upload of a multipart ``photos`` field."""
    stored = []
    try:
        for upload in uploads or []:
            if not upload.filename or upload.size == 0:
                continue
            stored.append(store_upload(db, storage, upload, entity_type, entity_id, **kwargs))
    except Exception:
        discard_files(storage, stored)
        raise
    return stored


def discard_files(storage: StorageProvider, stored: List[MediaAttachment]) -> None:
    """Delete files written for uploads whose rows will not be kept."""
    for media in stored:
        storage.delete(media.storage_key)
    if stored:
        logger.warning("media_discarded", count=len(stored))


def commit_with_files(db: Session, storage: StorageProvider, stored: List[MediaAttachment]) -> None:
    """Commit the request; on failure roll back and remove the files it wrote."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        discard_files(storage, stored)
        raise


def copy_attachments(
    db: Session,
    source_type: str,
    source_id: str,
    target_type: str,
    target_id: str,
    caption: str = "",
    category: str = "general",
) -> List[MediaAttachment]:
    """Attach the source entity's files to another entity without copying bytes."""
    copies = []
    for photo in list_media(db, source_type, source_id, newest_first=False):
        copy = MediaAttachment(
            entity_type=target_type,
            entity_id=target_id,
            file_name=photo.file_name,
            original_name=photo.original_name,
            mime_type=photo.mime_type,
            size_bytes=photo.size_bytes,
            caption=caption,
            category=category,
            uploaded_by_id=photo.uploaded_by_id,
            uploaded_by_name=photo.uploaded_by_name,
            storage_key=photo.storage_key or media_key(photo.entity_type, photo.entity_id, photo.file_name),
            created_at=utcnow(),
        )
        db.add(copy)
        copies.append(copy)
    return copies


def delete_media(db: Session, storage: StorageProvider, media: MediaAttachment) -> None:
    """Remove the row; the stored file is removed unless another row still points at it."""
    key = media.storage_key or media_key(media.entity_type, media.entity_id, media.file_name)
    shared = (
        db.query(MediaAttachment.id)
        .filter(MediaAttachment.storage_key == key, MediaAttachment.id != media.id)
        .first()
    )
    if shared is None:
        storage.delete(key)
    db.delete(media)
    logger.info("media_deleted", media_id=media.id, entity_type=media.entity_type, entity_id=media.entity_id)
