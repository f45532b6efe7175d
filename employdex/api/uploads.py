"""Upload readers shared by the bulk-import and QR code routes."""

from typing import Tuple

from fastapi import UploadFile

from employdex.core.config import settings
from employdex.core.exceptions import ValidationError

CSV_CONTENT_TYPES = {"text/csv", "application/vnd.ms-excel", "application/csv", "text/plain"}


async def read_csv_upload(file: UploadFile) -> str:
    """Return the decoded text of an uploaded CSV file."""
    filename = (file.filename or "").lower()
    if not filename.endswith(".csv") and file.content_type not in CSV_CONTENT_TYPES:
        raise ValidationError("Only CSV files are allowed")

    max_bytes = settings.MAX_CSV_UPLOAD_MB * 1024 * 1024
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"File exceeds {settings.MAX_CSV_UPLOAD_MB} MB limit")
    if not data.strip():
        raise ValidationError("CSV file is empty")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded")


async def read_image_upload(file: UploadFile) -> Tuple[bytes, str]:
    """Return the raw bytes and content type of an uploaded image.

    Reads one byte past the limit so the size check in the payment service
    can reject oversized files without buffering them whole.
    """
    max_bytes = settings.MAX_QR_IMAGE_MB * 1024 * 1024
    data = await file.read(max_bytes + 1)
    return data, file.content_type or ""
