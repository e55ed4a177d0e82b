# services/storage.py
"""
Local file storage for report photos.

Every file of a submission is validated (count, extension, MIME type and
size) before the first byte is written, and ``discard`` removes files whose
submission did not make it into the database.
"""
import logging
import os
import shutil
import uuid
from typing import List

from services.errors import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
UPLOAD_URL_PREFIX = "/uploads"
MAX_IMAGES = int(os.getenv("MAX_IMAGES", "6"))
MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE_MB", "5")) * 1024 * 1024
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"}


def _file_size(upload) -> int:
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def validate_image(upload) -> str:
    """Check one uploaded image and return its lower-cased extension"""
    if not upload.filename:
        raise ValidationError("No filename provided")

    file_ext = os.path.splitext(upload.filename.lower())[1]
    if file_ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )

    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError(f"{upload.filename} is not an image")

    if _file_size(upload) > MAX_IMAGE_SIZE:
        raise ValidationError(
            f"File too large. Maximum size: {MAX_IMAGE_SIZE // (1024 * 1024)}MB"
        )

    return file_ext


def _disk_path(relative_path: str) -> str:
    return os.path.join(UPLOAD_DIR, os.path.basename(relative_path))


def discard(relative_paths: List[str]) -> None:
    for relative_path in relative_paths:
        disk_path = _disk_path(relative_path)
        try:
            if os.path.exists(disk_path):
                os.remove(disk_path)
        except OSError as e:
            logger.error(f"Could not remove orphaned upload {disk_path}: {e}")


def save_images(uploads) -> List[str]:
    """Store a submission's images; returns their relative paths in upload order"""
    uploads = [u for u in (uploads or []) if u is not None and u.filename]
    if len(uploads) > MAX_IMAGES:
        raise ValidationError(f"Too many images. Maximum: {MAX_IMAGES}")

    extensions = [validate_image(upload) for upload in uploads]

    os.makedirs(UPLOAD_DIR, exist_ok=True)
    stored = []
    try:
        for upload, file_ext in zip(uploads, extensions):
            filename = f"defect_{uuid.uuid4()}{file_ext}"
            # Tracked before the write so a half-written file is cleaned up too
            stored.append(f"{UPLOAD_URL_PREFIX}/{filename}")
            with open(os.path.join(UPLOAD_DIR, filename), "wb") as buffer:
                shutil.copyfileobj(upload.file, buffer)
    except Exception:
        discard(stored)
        raise

    if stored:
        logger.info(f"Stored {len(stored)} image(s) in {UPLOAD_DIR}")
    return stored
