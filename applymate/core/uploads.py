import logging

from fastapi import HTTPException, UploadFile, status

from applymate.config import settings
from applymate.services.resume_text import is_pdf_upload, looks_like_pdf

logger = logging.getLogger(__name__)


def read_pdf_upload(file: UploadFile) -> bytes:
    """Read an uploaded PDF, enforcing type, size and magic bytes."""
    if not is_pdf_upload(file.filename, file.content_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only PDF files are allowed")
    content = file.file.read()
    max_bytes = settings.max_upload_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Max allowed is {settings.max_upload_mb}MB.",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    # Reject files that only claim to be PDFs
    if not looks_like_pdf(content):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid PDF file content.")
    logger.debug("Read PDF upload %s (%d bytes)", file.filename, len(content))
    return content
