"""Report photo storage backends.

The backend is chosen once at startup by ``create_image_storage()``: S3 when
``IMAGE_BUCKET`` is configured, otherwise a local directory.
"""

import io
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

import boto3
from botocore.exceptions import ClientError
from PIL import Image, ImageOps, UnidentifiedImageError
from ulid import ULID

from models.image import UploadedImage
from utils.constants import IMAGE_JPEG_QUALITY, MAX_IMAGE_DIMENSION
from utils.id_utils import utc_now_iso

logger = logging.getLogger(__name__)

S3_KEY_PREFIX = "reports/"
DEFAULT_UPLOAD_DIR = "uploads"
LOCAL_URL_PREFIX = "/uploads"

_PUBLIC_ID_PATTERN = re.compile(r"^[0-9A-Za-z]{26}$")


class ImageStorageError(Exception):
    """Raised when an image cannot be processed, stored or removed."""

    pass


def process_image(content: bytes) -> tuple[bytes, int, int]:
    """Normalize an uploaded image to a bounded JPEG.

    The image is rotated per its EXIF orientation, scaled down to fit
    MAX_IMAGE_DIMENSION on both sides (never up) and re-encoded.

    Returns:
        Tuple of (jpeg bytes, width, height)

    Raises:
        ImageStorageError: If the content is not a readable image
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            img.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))

            output = io.BytesIO()
            img.save(output, format="JPEG", quality=IMAGE_JPEG_QUALITY, optimize=True)
            return output.getvalue(), img.width, img.height
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ImageStorageError(f"Unreadable image: {e}") from e


def is_valid_public_id(public_id: str) -> bool:
    return bool(_PUBLIC_ID_PATTERN.match(public_id))


class ImageStorage(ABC):
    """Stores processed images and returns their public metadata."""

    backend_name: str = "abstract"

    def save(self, content: bytes, filename: str, content_type: str) -> UploadedImage:
        """Process and store one image.

        Args:
            content: Raw uploaded bytes
            filename: Client-supplied file name, used for logging only
            content_type: Client-supplied MIME type
        """
        data, width, height = process_image(content)
        public_id = str(ULID())
        url = self._put(public_id, data)
        logger.info(
            "Stored %s (%s) as %s via %s", filename, content_type, public_id, self.backend_name
        )
        return UploadedImage(
            url=url,
            public_id=public_id,
            width=width,
            height=height,
            size=len(data),
            format="jpeg",
            uploaded_at=utc_now_iso(),
        )

    def delete(self, public_id: str) -> bool:
        """Remove a stored image. Returns False if it does not exist."""
        if not is_valid_public_id(public_id):
            return False
        return self._remove(public_id)

    @abstractmethod
    def _put(self, public_id: str, data: bytes) -> str:
        """Write the bytes and return the public URL."""

    @abstractmethod
    def _remove(self, public_id: str) -> bool:
        """Delete the stored bytes."""


class S3ImageStorage(ImageStorage):
    """Images stored as public objects in an S3 bucket."""

    backend_name = "s3"

    def __init__(self, bucket: str, s3_client=None, public_base_url: str | None = None):
        self.bucket = bucket
        self.s3_client = s3_client or boto3.client(
            "s3", region_name=os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        )
        self.public_base_url = (
            public_base_url or f"https://{bucket}.s3.amazonaws.com"
        ).rstrip("/")

    def _key(self, public_id: str) -> str:
        return f"{S3_KEY_PREFIX}{public_id}.jpg"

    def _put(self, public_id: str, data: bytes) -> str:
        key = self._key(public_id)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType="image/jpeg",
                CacheControl="public, max-age=31536000",
            )
        except ClientError as e:
            logger.error("Failed to upload %s to S3: %s", key, e)
            raise ImageStorageError(f"Failed to store image: {e}") from e
        return f"{self.public_base_url}/{key}"

    def _remove(self, public_id: str) -> bool:
        key = self._key(public_id)
        try:
            self.s3_client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise ImageStorageError(f"Failed to look up image: {e}") from e

        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            logger.error("Failed to delete %s from S3: %s", key, e)
            raise ImageStorageError(f"Failed to delete image: {e}") from e
        return True


class LocalImageStorage(ImageStorage):
    """Images stored as files under a local directory."""

    backend_name = "local"

    def __init__(self, upload_dir: str | Path | None = None, public_base_url: str | None = None):
        self.upload_dir = Path(upload_dir or os.environ.get("UPLOAD_DIR", DEFAULT_UPLOAD_DIR))
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or LOCAL_URL_PREFIX).rstrip("/")

    def path_for(self, public_id: str) -> Path:
        return self.upload_dir / f"{public_id}.jpg"

    def _put(self, public_id: str, data: bytes) -> str:
        try:
            self.path_for(public_id).write_bytes(data)
        except OSError as e:
            raise ImageStorageError(f"Failed to store image: {e}") from e
        return f"{self.public_base_url}/{public_id}.jpg"

    def _remove(self, public_id: str) -> bool:
        path = self.path_for(public_id)
        if not path.exists():
            return False
        path.unlink()
        return True


def create_image_storage() -> ImageStorage:
    """Select the image backend from the environment."""
    bucket = os.environ.get("IMAGE_BUCKET")
    base_url = os.environ.get("IMAGE_PUBLIC_BASE_URL")
    if bucket:
        logger.info("Using S3 image storage in bucket %s", bucket)
        return S3ImageStorage(bucket, public_base_url=base_url)

    logger.warning("IMAGE_BUCKET not set, storing uploaded images on local disk")
    return LocalImageStorage(public_base_url=base_url)
