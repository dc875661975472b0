import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from typing import Optional
import cloudinary
from cloudinary import uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import UploadFile
from app.core.config import settings

logger = logging.getLogger(__name__)


class MediaUploadError(Exception):
    pass


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str
    resource_type: str = "image"


def configure_cloudinary():
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True
    )


class CloudinaryUploader:
    def __init__(self, folder: str = settings.CLOUDINARY_FOLDER):
        self.folder = folder

    def upload(self, path: str) -> UploadedMedia:
        try:
            # Images and videos both go through resource_type="auto"
            result = uploader.upload(path, folder=self.folder, resource_type="auto")
        except (CloudinaryError, OSError) as e:
            raise MediaUploadError(str(e)) from e
        return UploadedMedia(
            url=result["secure_url"],
            public_id=result["public_id"],
            resource_type=result.get("resource_type", "image"),
        )

    def destroy(self, media: UploadedMedia):
        try:
            uploader.destroy(media.public_id, resource_type=media.resource_type)
        except CloudinaryError as e:
            logger.error(f"Cloudinary cleanup error: {str(e)}")


def get_media_uploader():
    return CloudinaryUploader()


def save_upload_to_temp(upload: UploadFile, directory: Optional[str] = None) -> str:
    """Spool an incoming upload to a local temporary file and return its path."""
    directory = directory or settings.UPLOAD_DIR
    os.makedirs(directory, exist_ok=True)
    suffix = os.path.splitext(upload.filename or "")[1]
    with tempfile.NamedTemporaryFile(dir=directory, suffix=suffix, delete=False) as tmp:
        upload.file.seek(0)
        shutil.copyfileobj(upload.file, tmp)
        return tmp.name


def remove_temp_file(path: str):
    try:
        os.remove(path)
    except OSError as e:
        logger.error(f"Error deleting temporary file {path}: {e}")
