from typing import BinaryIO, Optional


class StorageProvider:
    """Where uploaded media bytes live.

    Keys are relative paths of the form ``<entity_type>/<entity_id>/<file_name>``;
    several media rows may share one key.
    """

    def save(self, key: str, stream: BinaryIO) -> int:
        """Write ``stream`` under ``key`` and return the stored size in bytes."""
        raise NotImplementedError

    def path_for(self, key: str) -> Optional[str]:
        """Local path to serve for ``key``, or None when nothing is stored."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError
