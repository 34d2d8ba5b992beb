"""
File Upload Utility - Validate registration form images.

Supported formats: JPEG, PNG, GIF, WEBP
Max file size: settings.max_upload_size_mb (5MB default)
"""

from typing import Optional, Tuple
from fastapi import UploadFile

from placement_tracker.core.config import Settings, get_settings
from placement_tracker.core.exceptions import PayloadTooLargeError, ValidationError
from placement_tracker.core.logger import get_logger
from placement_tracker.services.document_extraction_service import DEFAULT_MIME_TYPE

logger = get_logger(__name__)


async def read_image_upload(
    file: Optional[UploadFile],
    settings: Optional[Settings] = None
) -> Tuple[bytes, str]:
    """
    Read and validate an uploaded form image.

    Args:
        file: FastAPI UploadFile (None when the form field is missing)
        settings: overrides the process settings (tests)

    Returns:
        Tuple of (image_bytes, mime_type)

    Raises:
        ValidationError (400) for a missing/empty file or a non-image type
        PayloadTooLargeError (413) when over the size limit
    """
    settings = settings or get_settings()

    if file is None:
        raise ValidationError("No file provided")

    content = await file.read()
    if not content:
        raise ValidationError("No file provided")

    mime_type = (file.content_type or DEFAULT_MIME_TYPE).lower()
    if mime_type not in settings.allowed_image_types:
        raise ValidationError(
            f"Unsupported file type '{mime_type}'. Allowed: JPEG, PNG, GIF, WEBP"
        )

    if len(content) > settings.max_upload_size_bytes:
        raise PayloadTooLargeError(
            f"File too large. Maximum size: {settings.max_upload_size_mb}MB"
        )

    logger.info("File received: %s (%s, %d bytes)", file.filename, mime_type, len(content))
    return content, mime_type
