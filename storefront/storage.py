import hashlib
import logging
import mimetypes
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile, status

from storefront import config

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
MAX_UPLOAD_SIZE = 5 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"
META_SUFFIX = ".meta"

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


@dataclass
class StoredObject:
    key: str
    path: Path
    content_type: str
    size: int
    etag: str


class ObjectStorage:
    """Key/value blob store on the local filesystem.

    Keys are slash separated (``products/123-abc.png``) and must stay inside
    the root directory. The content type given to ``put`` is kept in a
    ``<key>.meta`` file next to the object.
    """

    def __init__(self, root):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        if not key or key.startswith("/") or key.endswith(META_SUFFIX):
            raise ValueError(f"Invalid storage key: {key!r}")
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Invalid storage key: {key!r}")
        return path

    @staticmethod
    def _meta_path(path: Path) -> Path:
        return path.with_name(path.name + META_SUFFIX)

    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> StoredObject:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        self._meta_path(path).write_text(content_type, encoding="utf-8")
        return self.get(key)

    def get(self, key: str) -> Optional[StoredObject]:
        path = self._path(key)
        if not path.is_file():
            return None
        meta = self._meta_path(path)
        content_type = meta.read_text(encoding="utf-8").strip() if meta.is_file() else ""
        stat = path.stat()
        etag = hashlib.md5(f"{stat.st_mtime_ns}-{stat.st_size}".encode()).hexdigest()
        return StoredObject(
            key=key,
            path=path,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            size=stat.st_size,
            etag=f'"{etag}"',
        )

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        path.unlink()
        self._meta_path(path).unlink(missing_ok=True)
        return True


def get_storage() -> ObjectStorage:
    return ObjectStorage(config.STORAGE_DIR)


def make_key(folder: str, content_type: Optional[str]) -> str:
    # extension follows the declared type, never the client's filename
    extension = EXTENSIONS.get(content_type)
    if extension is None:
        guessed = mimetypes.guess_extension(content_type or "") or ".bin"
        extension = guessed.lstrip(".")
    return f"{folder}/{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"


async def save_upload(
    storage: ObjectStorage,
    file: UploadFile,
    folder: str = "uploads",
    allowed_types=None,
    max_size: int = MAX_UPLOAD_SIZE,
) -> StoredObject:
    allowed_types = allowed_types or ALLOWED_IMAGE_TYPES
    if file.content_type not in allowed_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type {file.content_type} is not allowed. Allowed types: {', '.join(allowed_types)}",
        )
    data = await file.read()
    if len(data) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size {len(data) / 1024 / 1024:.2f}MB exceeds maximum {max_size / 1024 / 1024:.2f}MB",
        )
    stored = storage.put(make_key(folder, file.content_type), data, file.content_type)
    logger.info("Stored upload %s (%d bytes)", stored.key, stored.size)
    return stored


def public_url(base_url: str, key: str) -> str:
    return f"{str(base_url).rstrip('/')}/api/storage/{key}"
