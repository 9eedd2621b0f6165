"""
Upload orchestration
Validates media against the size/type policy and stores it in the blob store
"""

import logging
import time
import uuid
from typing import Optional

from civicai.core.config import settings
from civicai.core.constants import MIME_EXTENSIONS
from civicai.core.errors import (
    CivicAIError,
    MediaTooLarge,
    UnsupportedMediaType,
    UploadFailed,
)
from civicai.issues.models import MediaAsset, MediaKind, MediaReference
from civicai.store.base import BlobStore

logger = logging.getLogger(__name__)


def classify_media(mime_type: str) -> MediaKind:
    """
    Media kind for a mime type.

    Raises:
        UnsupportedMediaType: neither image/* nor video/*
    """
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return MediaKind.IMAGE
    if mime_type.startswith("video/"):
        return MediaKind.VIDEO
    raise UnsupportedMediaType(mime_type)


def make_storage_key(mime_type: str) -> str:
    """Collision-resistant object key: epoch milliseconds plus a random suffix."""
    subtype = mime_type.split("/", 1)[-1].split(";")[0]
    extension = MIME_EXTENSIONS.get(mime_type.lower(), subtype or "bin")
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}.{extension}"


class UploadOrchestrator:
    """
    Turns a MediaAsset into a remote MediaReference.

    Images and videos have separate size ceilings and buckets. Validation
    happens before any blob store call.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        image_max_bytes: Optional[int] = None,
        video_max_bytes: Optional[int] = None,
        image_bucket: Optional[str] = None,
        video_bucket: Optional[str] = None
    ):
        self.blob_store = blob_store
        self.limits = {
            MediaKind.IMAGE: image_max_bytes or settings.image_max_bytes,
            MediaKind.VIDEO: video_max_bytes or settings.video_max_bytes,
        }
        self.buckets = {
            MediaKind.IMAGE: image_bucket or settings.image_bucket,
            MediaKind.VIDEO: video_bucket or settings.video_bucket,
        }

    def validate(self, asset: MediaAsset) -> MediaKind:
        """
        Check type and size.

        Raises:
            UnsupportedMediaType: not an image or video
            MediaTooLarge: over the ceiling for its kind
        """
        kind = classify_media(asset.mime_type)
        limit = self.limits[kind]
        if asset.size > limit:
            raise MediaTooLarge(kind.value, asset.size, limit)
        return kind

    async def upload(self, asset: MediaAsset) -> MediaReference:
        """
        Validate and store an asset.

        Returns:
            MediaReference with the public URL and kind

        Raises:
            UnsupportedMediaType, MediaTooLarge: asset rejected, nothing sent
            UploadFailed: the blob store failed; carries its message
        """
        try:
            kind = self.validate(asset)
        except (UnsupportedMediaType, MediaTooLarge) as e:
            logger.warning(f"Media rejected: {e}")
            raise

        bucket = self.buckets[kind]
        key = make_storage_key(asset.mime_type)

        try:
            url = await self.blob_store.put(asset.data, asset.mime_type, bucket, key)
        except CivicAIError as e:
            logger.error(f"Upload of {key} to {bucket} failed: {e}")
            raise UploadFailed(str(e)) from e

        logger.info(f"Uploaded {kind.value} {bucket}/{key} ({asset.size} bytes)")
        return MediaReference(url=url, kind=kind, bucket=bucket, key=key)

    async def remove(self, reference: MediaReference) -> None:
        """Delete an uploaded object."""
        await self.blob_store.delete(reference.bucket, reference.key)
