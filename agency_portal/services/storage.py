"""
Media storage collaborator.

The portal hands uploaded bytes to a ``MediaStorage`` and records whatever
URL it returns. How and where bytes live is the storage's business; the
default writes under ``settings.media_root``.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Optional

import structlog
from starlette.concurrency import run_in_threadpool

from agency_portal.core.config import get_settings

log = structlog.get_logger()


@dataclass(frozen=True)
class StoredMedia:
    url: str
    size: int
    thumbnail_url: Optional[str] = None


class MediaStorage(ABC):
    @abstractmethod
    async def save(
        self,
        *,
        agency_id: uuid.UUID,
        model_id: uuid.UUID,
        file_name: str,
        content_type: str,
        data: bytes,
    ) -> StoredMedia:
        """Persist ``data`` and return where it can be fetched from."""

    @abstractmethod
    async def delete(self, url: str) -> None:
        """Remove media previously returned by ``save``. Missing media is not an error."""


class LocalMediaStorage(MediaStorage):
    """Writes files to a local directory served under ``base_url``."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def save(self, *, agency_id, model_id, file_name, content_type, data) -> StoredMedia:
        suffix = PurePosixPath(file_name).suffix.lower()[:10]
        relative = PurePosixPath(str(agency_id), str(model_id), f"{uuid.uuid4()}{suffix}")
        await run_in_threadpool(self._write, self.root / relative, data)
        log.debug("storage.saved", path=str(relative), size=len(data), content_type=content_type)
        return StoredMedia(url=f"{self.base_url}/{relative}", size=len(data))

    async def delete(self, url: str) -> None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return
        relative = url[len(prefix):]
        await run_in_threadpool((self.root / PurePosixPath(relative)).unlink, missing_ok=True)
        log.debug("storage.deleted", path=relative)


@lru_cache
def get_storage() -> MediaStorage:
    """FastAPI dependency; overridden in tests."""
    settings = get_settings()
    return LocalMediaStorage(settings.media_root, settings.media_base_url)
