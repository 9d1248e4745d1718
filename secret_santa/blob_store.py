"""
blob_store.py
Stores uploaded image and audio gifts on local disk and hands back the
public URL the message body should carry.
"""
import logging
import mimetypes
import os
import uuid

from .errors import TransientStoreError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_KINDS = ("image/", "audio/")


class LocalBlobStore:
    def __init__(self, root_dir: str, url_prefix: str, max_bytes: int):
        self.root_dir = root_dir
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def check(self, size: int, content_type: str) -> None:
        """Reject before anything touches the disk."""
        if not content_type or not content_type.startswith(ALLOWED_KINDS):
            raise ValidationError("Only image or audio files can be sent")
        if size == 0:
            raise ValidationError("File is empty")
        if size > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise ValidationError(f"File too large (max {limit_mb:g}MB)")

    def upload(self, data: bytes, content_type: str) -> str:
        self.check(len(data), content_type)
        extension = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""
        name = f"{uuid.uuid4().hex}{extension}"
        try:
            os.makedirs(self.root_dir, exist_ok=True)
            with open(os.path.join(self.root_dir, name), "wb") as f:
                f.write(data)
        except OSError as exc:
            logger.exception("[UPLOAD] Writing %s failed", name)
            raise TransientStoreError("Upload failed") from exc

        logger.info("[UPLOAD] Stored %s (%d bytes)", name, len(data))
        return f"{self.url_prefix}/{name}"
