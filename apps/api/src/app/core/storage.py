"""
File Storage

Local-disk storage for uploaded documents. Every upload gets its own object
key (a random prefix plus the SHA-256 digest), so deleting one row's file
never removes a file another row points at.

The service layer depends only on the FileStorage protocol, so a blob-store
implementation can be swapped in through `get_storage`.
"""

import asyncio
import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

# Content types accepted for uploaded documents
ALLOWED_DOCUMENT_TYPES = {
    "application/pdf": "pdf",
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
}


def validate_document(
    data: bytes,
    filename: str,
    content_type: str | None,
    max_size: int,
) -> None:
    """
    Check an uploaded document before it is stored.

    Raises:
        ValidationError: If the file is empty, too large or of a disallowed type
    """
    details = []
    if not data:
        details.append({"field": "file", "message": "File is empty"})
    elif len(data) > max_size:
        limit_mb = max_size // (1024 * 1024)
        details.append({"field": "file", "message": f"File exceeds the {limit_mb} MB limit"})

    if (content_type or "").lower() not in ALLOWED_DOCUMENT_TYPES:
        details.append({"field": "file", "message": "Only PDF, PNG and JPEG files are accepted"})

    if details:
        raise ValidationError(f"Invalid file {filename!r}.", details=details)


@dataclass(frozen=True)
class FileMetadata:
    """Metadata supplied with an upload."""

    filename: str
    content_type: str
    folder: str = "documents"
    extra: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredFile:
    """Result of a successful store operation."""

    url: str
    size: int
    sha256: str


class FileStorage(Protocol):
    async def store(self, data: bytes, metadata: FileMetadata) -> StoredFile: ...

    async def delete(self, url: str) -> None: ...


class LocalFileStorage:
    """Stores files below a root directory and serves them under a base URL."""

    def __init__(self, root: str | Path, base_url: str = "/storage"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _path_for_url(self, url: str) -> Path:
        if not url.startswith(f"{self.base_url}/"):
            raise ValueError(f"URL {url} is not managed by this storage")
        relative = url[len(self.base_url) + 1 :]
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"URL {url} escapes the storage root")
        return path

    async def store(self, data: bytes, metadata: FileMetadata) -> StoredFile:
        digest = hashlib.sha256(data).hexdigest()
        extension = ALLOWED_DOCUMENT_TYPES.get(metadata.content_type)
        if extension is None:
            extension = Path(metadata.filename).suffix.lstrip(".") or "bin"

        relative = Path(metadata.folder) / f"{uuid.uuid4().hex}-{digest}.{extension}"
        target = self.root / relative

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info(f"Stored {metadata.filename} ({len(data)} bytes) as {relative}")

        return StoredFile(
            url=f"{self.base_url}/{relative.as_posix()}",
            size=len(data),
            sha256=digest,
        )

    async def delete(self, url: str) -> None:
        path = self._path_for_url(url)
        await asyncio.to_thread(path.unlink, True)
        logger.info(f"Deleted stored file {url}")


_storage: FileStorage | None = None


def get_storage() -> FileStorage:
    """FastAPI dependency returning the configured storage backend."""
    global _storage
    if _storage is None:
        _storage = LocalFileStorage(settings.storage_root, settings.storage_base_url)
    return _storage
