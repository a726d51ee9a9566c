import logging
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import BinaryIO, Optional

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from config import settings
from errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
STATIC_PREFIX = "/static/"


def extract_public_id(url: str) -> Optional[str]:
    """Pull the Cloudinary public id out of a delivery URL.

    https://res.cloudinary.com/demo/image/upload/v1712/coaching-cms/abc.jpg
    -> coaching-cms/abc
    """
    if not url or "/upload/" not in url:
        return None
    path = url.split("/upload/", 1)[1].split("?", 1)[0]
    path = re.sub(r"^v\d+/", "", path)
    public_id, _ = os.path.splitext(path)
    return public_id or None


class MediaHost(ABC):
    @abstractmethod
    def upload(self, stream: BinaryIO, filename: str) -> str:
        """Store the image and return its public URL."""

    @abstractmethod
    def delete(self, url: str) -> None:
        """Remove a previously stored image."""


class CloudinaryMediaHost(MediaHost):
    def __init__(self, folder: str):
        self.folder = folder
        if settings.CLOUDINARY_URL:
            # The SDK reads CLOUDINARY_URL from the environment itself
            cloudinary.config(secure=True)
        else:
            cloudinary.config(
                cloud_name=settings.CLOUDINARY_CLOUD_NAME,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )

    def upload(self, stream: BinaryIO, filename: str) -> str:
        result = cloudinary.uploader.upload(
            stream,
            folder=self.folder,
            resource_type="image",
            transformation=[{"width": 1200, "height": 800, "crop": "limit"}],
        )
        return result["secure_url"]

    def delete(self, url: str) -> None:
        public_id = extract_public_id(url)
        if not public_id:
            return
        cloudinary.uploader.destroy(public_id)


class LocalMediaHost(MediaHost):
    """Stores uploads on disk; main.py serves the directory under /static."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def upload(self, stream: BinaryIO, filename: str) -> str:
        name, ext = os.path.splitext(filename)
        safe = re.sub(r"[^A-Za-z0-9_-]", "_", name)[:64]
        ts = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")
        stored = f"{safe}_{ts}{ext.lower()}"
        with open(os.path.join(self.directory, stored), "wb") as f:
            f.write(stream.read())
        return f"{STATIC_PREFIX}{stored}"

    def delete(self, url: str) -> None:
        if not url or not url.startswith(STATIC_PREFIX):
            return
        path = os.path.join(self.directory, os.path.basename(url))
        if os.path.exists(path):
            os.remove(path)


_media_host: Optional[MediaHost] = None


def get_media_host() -> MediaHost:
    global _media_host
    if _media_host is None:
        if settings.cloudinary_enabled:
            _media_host = CloudinaryMediaHost(settings.MEDIA_FOLDER)
        else:
            _media_host = LocalMediaHost(settings.UPLOAD_DIR)
    return _media_host


def store_upload(media: MediaHost, upload: UploadFile, field: str) -> str:
    """Check the attached file and push it to the media host, returning its URL."""
    filename = upload.filename or ""
    _, ext = os.path.splitext(filename)
    if ext.lower() not in ALLOWED_EXTENSIONS:
        raise ValidationFailed.for_field(field, "Only image files are allowed (jpg, jpeg, png, gif, webp)")
    if upload.size is not None and upload.size > settings.MAX_UPLOAD_BYTES:
        raise ValidationFailed.for_field(field, "Image exceeds the maximum upload size")
    upload.file.seek(0)
    return media.upload(upload.file, filename)


def discard(media: MediaHost, url: Optional[str]) -> None:
    """Best-effort removal of a stored image; failures are logged and swallowed."""
    if not url:
        return
    try:
        media.delete(url)
    except Exception:
        logger.exception("Error deleting image %s", url)
