"""
Blob store for receipts and tenant logos.

Blobs are addressed by generated keys. Downloads go through short-lived
presigned URLs: a signed JWT naming the key, verified by the files route.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, UTC
from pathlib import Path

from jose import JWTError, jwt

from app.config import settings
from app.core.exceptions import NotFoundException, UnauthorizedException

logger = logging.getLogger(__name__)

PRESIGN_PURPOSE = "blob"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-_]")


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", filename).lower()


def generate_blob_key(tenant_slug: str, filename: str, now: datetime) -> str:
    """
    Key layout: artifacts/{slug}/{YYYY}/{MM}/{epoch_ms}_{sanitized filename}
    """
    epoch_ms = int(now.replace(tzinfo=UTC).timestamp() * 1000)
    return (
        f"artifacts/{tenant_slug}/{now.year:04d}/{now.month:02d}/"
        f"{epoch_ms}_{sanitize_filename(filename)}"
    )


def create_presigned_token(key: str, expires_in: int | None = None) -> str:
    if expires_in is None:
        expires_in = settings.PRESIGNED_URL_EXPIRE_SECONDS
    now = datetime.now(UTC)
    payload = {
        "key": key,
        "purpose": PRESIGN_PURPOSE,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_presigned_token(key: str, token: str) -> None:
    """
    Raises:
        UnauthorizedException: If the token is invalid, expired or signed for another key
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedException()
    if payload.get("purpose") != PRESIGN_PURPOSE or payload.get("key") != key:
        raise UnauthorizedException()


class BlobStore(ABC):
    """put/get/delete/presign over opaque keys"""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store data under key and return the key."""

    @abstractmethod
    def get(self, key: str) -> tuple[bytes, str]:
        """
        Returns:
            (data, content_type)

        Raises:
            NotFoundException: If nothing is stored under key
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the blob. Deleting a missing key is not an error."""

    def presign(self, key: str, expires_in: int | None = None) -> str:
        """Relative download URL valid for expires_in seconds."""
        return f"/api/files/{key}?token={create_presigned_token(key, expires_in)}"


class InMemoryBlobStore(BlobStore):
    """Process-local store, used by tests and STORAGE_BACKEND=memory."""

    def __init__(self):
        self._blobs: dict[str, tuple[bytes, str]] = {}

    def put(self, key: str, data: bytes, content_type: str) -> str:
        self._blobs[key] = (data, content_type)
        return key

    def get(self, key: str) -> tuple[bytes, str]:
        if key not in self._blobs:
            raise NotFoundException("File")
        return self._blobs[key]

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)


class LocalBlobStore(BlobStore):
    """
    Filesystem store rooted at STORAGE_ROOT.

    The content type is kept in a sidecar file next to the blob.
    """

    CONTENT_TYPE_SUFFIX = ".content-type"

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise NotFoundException("File")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        path.with_name(path.name + self.CONTENT_TYPE_SUFFIX).write_text(content_type)
        logger.debug("Stored blob %s (%d bytes)", key, len(data))
        return key

    def get(self, key: str) -> tuple[bytes, str]:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundException("File")
        sidecar = path.with_name(path.name + self.CONTENT_TYPE_SUFFIX)
        content_type = sidecar.read_text() if sidecar.is_file() else "application/octet-stream"
        return path.read_bytes(), content_type

    def delete(self, key: str) -> None:
        path = self._path(key)
        path.unlink(missing_ok=True)
        path.with_name(path.name + self.CONTENT_TYPE_SUFFIX).unlink(missing_ok=True)
        logger.debug("Deleted blob %s", key)


def build_blob_store() -> BlobStore:
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryBlobStore()
    return LocalBlobStore(settings.STORAGE_ROOT)
