from datetime import datetime

from .common import OrmModel


class MediaResponse(OrmModel):
    id: str
    entity_type: str
    entity_id: str
    file_name: str
    original_name: str
    mime_type: str
    size_bytes: int
    caption: str
    category: str
    uploaded_by_id: str
    uploaded_by_name: str
    created_at: datetime
