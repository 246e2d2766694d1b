"""Storage for uploaded submission files.

Files are written under ``UPLOAD_DIR`` with a generated public id and served
back from ``MEDIA_BASE_URL``. Callers only rely on ``upload`` returning a
durable URL plus a reference id, and on ``delete`` accepting that id.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import MAX_UPLOAD_SIZE, MEDIA_BASE_URL, UPLOAD_DIR
from core.exceptions import MediaUploadError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredMedia:
    url: str
    public_id: str


class MediaStorage:
    """Stores uploaded files on local disk."""

    def __init__(
        self,
        root: Path = UPLOAD_DIR,
        base_url: str = MEDIA_BASE_URL,
        max_size: int = MAX_UPLOAD_SIZE,
    ):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_size = max_size

    def upload(self, content: bytes, filename: Optional[str], folder: str) -> StoredMedia:
        """Store a file and return its public URL and reference id.

        Args:
            content: Raw file bytes.
            filename: Original client filename, used for readability only.
            folder: Sub-folder, e.g. "assignments".

        Returns:
            StoredMedia with the URL and public id.

        Raises:
            ValidationError: If the file is empty or too large.
            MediaUploadError: If the file cannot be written.
        """
        if not content:
            raise ValidationError("Uploaded file is empty")
        self.check_size(len(content))

        safe_name = re.sub(r"[^\w\-.]", "_", Path(filename or "file").name)
        public_id = f"{folder}/{secrets.token_hex(8)}-{safe_name}"
        target = self.root / public_id
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            logger.error("Failed to store upload %s: %s", public_id, e, exc_info=True)
            raise MediaUploadError(
                "Failed to upload file. Please try again.", public_id=public_id
            ) from e

        logger.info("Stored upload %s (%d bytes)", public_id, len(content))
        return StoredMedia(url=f"{self.base_url}/{public_id}", public_id=public_id)

    def check_size(self, size: int) -> None:
        if size > self.max_size:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {self.max_size // (1024 * 1024)}MB",
                max_size=self.max_size,
            )

    def delete(self, public_id: str) -> bool:
        """Delete a stored file. Returns False if it was already gone."""
        target = self.root / public_id
        if not target.is_file():
            logger.warning("Upload not found for deletion: %s", public_id)
            return False
        target.unlink()
        logger.info("Deleted upload %s", public_id)
        return True
