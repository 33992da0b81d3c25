"""File storage for uploaded documents and avatars."""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from backend.app.core.settings import get_settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class LocalStorage:
    root: Path
    url_prefix: str = "/storage"

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        candidate = (self.root / safe_key).resolve()
        if self.root.resolve() not in candidate.parents:
            raise StorageError(f"Refusing to access path outside storage root: {key}")
        return candidate

    def store(self, data: bytes, original_name: str, directory: str = "documents") -> str:
        """Persist bytes under a random name, keeping the original extension; return the key."""
        extension = Path(original_name or "").suffix.lower()
        key = f"{directory}/{uuid.uuid4().hex}{extension}"
        target = self._path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return key

    def delete(self, key: str | None) -> None:
        if not key:
            return
        target = self._path(key)
        if target.exists():
            target.unlink()
        else:
            logger.warning("Stored file %s already missing on delete", key)

    def exists(self, key: str | None) -> bool:
        return bool(key) and self._path(key).exists()

    def absolute_path(self, key: str) -> Path:
        return self._path(key)

    def url(self, key: str) -> str:
        return f"{self.url_prefix.rstrip('/')}/{key.lstrip('/')}"


_storage = None


def get_storage() -> LocalStorage:
    global _storage
    if _storage is None:
        settings = get_settings()
        _storage = LocalStorage(root=Path(settings.storage_root), url_prefix=settings.storage_url_prefix)
    return _storage
