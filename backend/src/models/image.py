"""Uploaded image metadata."""

from models.base import ApiModel


class UploadedImage(ApiModel):
    """An image stored by the configured image storage backend."""

    url: str
    public_id: str
    width: int
    height: int
    size: int
    format: str
    uploaded_at: str
