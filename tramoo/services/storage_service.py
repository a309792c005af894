"""Storage service for uploaded media.

Uses local disk. All media is organized by user_id: users/{user_id}/{kind}/{filename}
"""
import logging
import shutil
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from tramoo.core.config import settings

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Protocol for storage backends."""

    def save(self, user_id: str, kind: str, data: bytes, ext: str) -> str:
        """Save file and return public URL."""
        ...

    def delete(self, url: str) -> bool:
        """Delete file by URL. Returns True if deleted."""
        ...

    def delete_user_media(self, user_id: str) -> None:
        ...


class LocalStorage:
    """Store files on local disk. Path: uploads/users/{user_id}/{kind}/{uuid}.{ext}"""

    def __init__(self, base_dir: str | Path | None = None, base_url: str | None = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR).resolve()
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def _user_path(self, user_id: str, kind: str) -> Path:
        path = self.base_dir / "users" / str(user_id) / kind
        path.mkdir(parents=True, exist_ok=True)
        return path

    def save(self, user_id: str, kind: str, data: bytes, ext: str) -> str:
        """Save file and return public URL."""
        path = self._user_path(user_id, kind)
        filename = f"{uuid.uuid4().hex}{ext}"
        (path / filename).write_bytes(data)
        rel = f"users/{user_id}/{kind}/{filename}"
        return f"{self.base_url}/uploads/{rel}"

    def path_for(self, url: str) -> Path | None:
        """Map a public URL back to a file under base_dir; None for foreign URLs."""
        if "/uploads/" not in url:
            return None
        rel = url.split("/uploads/", 1)[1]
        filepath = (self.base_dir / rel).resolve()
        if not filepath.is_relative_to(self.base_dir):
            return None
        return filepath

    def delete(self, url: str) -> bool:
        """Delete file by URL. Returns True if deleted."""
        filepath = self.path_for(url)
        if filepath is None or not filepath.exists():
            return False
        filepath.unlink()
        return True

    def delete_user_media(self, user_id: str) -> None:
        shutil.rmtree(self.base_dir / "users" / str(user_id), ignore_errors=True)


def purge_media(storage: StorageBackend, urls: Iterable[str]) -> int:
    """Best-effort removal of media files. Failures are logged, never raised."""
    removed = 0
    for url in urls:
        try:
            if storage.delete(url):
                removed += 1
        except OSError as e:
            logger.warning("Could not remove media file %s: %s", url, e)
    return removed


_storage: StorageBackend | None = None


def get_storage() -> StorageBackend:
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
