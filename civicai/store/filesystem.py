"""
Filesystem blob store
Keeps media under a local directory, one subdirectory per bucket
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from civicai.core.errors import StoreError
from civicai.store.base import BlobStore

logger = logging.getLogger(__name__)


class FilesystemBlobStore(BlobStore):
    """
    Blob store writing objects to root/bucket/key.

    URLs are built from base_url when the directory is served over HTTP,
    otherwise they are file:// URIs of the stored files.
    """

    def __init__(self, root: str, base_url: Optional[str] = None):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    def _path(self, bucket: str, key: str) -> Path:
        for part in (bucket, key):
            if not part or "/" in part or "\\" in part or part in (".", ".."):
                raise StoreError(f"Invalid storage path component: {part!r}")
        return self.root / bucket / key

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, data: bytes, mime_type: str, bucket: str, key: str) -> str:
        path = self._path(bucket, key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            raise StoreError(f"Could not store {bucket}/{key}: {e}") from e

        logger.debug(f"Stored {len(data)} bytes ({mime_type}) at {path}")
        if self.base_url:
            return f"{self.base_url}/{bucket}/{key}"
        return path.resolve().as_uri()

    async def delete(self, bucket: str, key: str) -> None:
        path = self._path(bucket, key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.error(f"Error deleting {path}: {e}")
            raise StoreError(f"Could not delete {bucket}/{key}: {e}") from e
