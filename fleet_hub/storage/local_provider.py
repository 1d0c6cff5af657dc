"""
Local filesystem storage for uploaded photos and documents.
Files are laid out as <base_dir>/<entity_type>/<entity_id>/<file_name>.
"""
import shutil
from pathlib import Path
from typing import BinaryIO, Optional

import structlog

from .provider import StorageProvider


logger = structlog.get_logger(__name__)


def media_key(entity_type: str, entity_id: str, file_name: str) -> str:
    return f"{entity_type}/{entity_id}/{file_name}"


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider."""

    def __init__(self, base_dir: str = "var/uploads"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Get the local filesystem path for a given key."""
        # Remove leading slash and sanitize
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key

    def save(self, key: str, stream: BinaryIO) -> int:
        """Copy a stream into storage, returning the number of bytes written."""
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            shutil.copyfileobj(stream, f)
        return path.stat().st_size

    def path_for(self, key: str) -> Optional[str]:
        path = self._get_path(key)
        if path.exists():
            return str(path)
        return None

    def delete(self, key: str) -> None:
        """Delete a stored file. A file that is already gone is not an error."""
        path = self._get_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("media_file_already_removed", key=key)
        except OSError as e:
            logger.warning("media_file_delete_failed", key=key, error=str(e))
