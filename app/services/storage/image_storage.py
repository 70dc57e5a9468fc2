"""
Image storage for generated illustrations.

Images arrive as base64 data URIs and are stored under
``stories/{userId}/{uuid4}``, in Firebase Storage or, in local dev mode,
in a media directory served by the app.
"""

import asyncio
import base64
import binascii
import re
import uuid
from pathlib import Path
from typing import Any, Tuple
from urllib.parse import quote

from app.utils.exceptions import UpstreamServiceError
from app.utils.logger import get_logger

logger = get_logger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(image/\w+);base64,(.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def parse_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """
    Split a base64 image data URI.

    Returns:
        (content_type, raw bytes)

    Raises:
        ValueError: If the string is not a base64 image data URI
    """
    match = DATA_URI_PATTERN.match(data_uri)
    if not match:
        raise ValueError("Invalid base64 string format.")
    try:
        raw = base64.b64decode(match.group(2), validate=True)
    except binascii.Error as e:
        raise ValueError("Invalid base64 string format.") from e
    return match.group(1), raw


def image_path(user_id: str) -> str:
    """Object path for a new image of ``user_id``."""
    return f"stories/{user_id}/{uuid.uuid4()}"


class FirebaseImageStorage:
    """Uploads images to the Firebase Storage bucket."""

    def __init__(self, bucket: Any):
        """
        Args:
            bucket: ``google.cloud.storage.Bucket`` from ``firebase_admin.storage.bucket()``
        """
        self.bucket = bucket

    def _upload(self, path: str, content_type: str, raw: bytes) -> str:
        token = str(uuid.uuid4())
        blob = self.bucket.blob(path)
        blob.metadata = {"firebaseStorageDownloadTokens": token}
        blob.upload_from_string(raw, content_type=content_type)
        return (
            f"https://firebasestorage.googleapis.com/v0/b/{self.bucket.name}/o/"
            f"{quote(path, safe='')}?alt=media&token={token}"
        )

    async def upload(self, data_uri: str, user_id: str) -> str:
        """
        Upload one image and return its download URL.

        Raises:
            UpstreamServiceError: If the data URI is malformed or the upload fails
        """
        try:
            content_type, raw = parse_data_uri(data_uri)
            path = image_path(user_id)
            url = await asyncio.to_thread(self._upload, path, content_type, raw)
        except Exception as e:
            logger.error(f"Error uploading image to Firebase Storage: {e}")
            raise UpstreamServiceError("Could not upload image.") from e

        logger.debug(f"Uploaded image to {path}")
        return url


class LocalImageStorage:
    """Writes images to the local media directory (dev mode)."""

    def __init__(self, media_dir: str, public_base_url: str):
        self.media_dir = Path(media_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def _write(self, path: str, raw: bytes) -> None:
        target = self.media_dir / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(raw)

    async def upload(self, data_uri: str, user_id: str) -> str:
        """
        Store one image and return the URL it is served at.

        Raises:
            UpstreamServiceError: If the data URI is malformed or the write fails
        """
        try:
            content_type, raw = parse_data_uri(data_uri)
            path = image_path(user_id) + _EXTENSIONS.get(content_type, "")
            await asyncio.to_thread(self._write, path, raw)
        except Exception as e:
            logger.error(f"Error writing image to {self.media_dir}: {e}")
            raise UpstreamServiceError("Could not upload image.") from e

        return f"{self.public_base_url}/media/{path}"
