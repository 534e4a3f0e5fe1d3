"""
Upload gate for exam submission files.

Both checks always run so the caller can show every problem at once.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import ALLOWED_MIME_TYPES, MAX_FILE_SIZE_BYTES

MIME_TO_FILE_TYPE = {
    'application/pdf': 'pdf',
    'image/jpeg': 'jpeg',
    'image/png': 'png',
}


class FileValidationResult(BaseModel):
    valid: bool
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    errors: List[str] = Field(default_factory=list)


def _mb(size_bytes):
    return size_bytes / (1024 * 1024)


def validate_file_type(mime_type):
    """Return (normalized_mime, None) when allowed, (None, error) otherwise."""
    normalized = (mime_type or "").strip().lower()
    if normalized in ALLOWED_MIME_TYPES:
        return normalized, None
    return None, (
        f"Invalid file type: {mime_type}. "
        f"Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
    )


def validate_file_size(size_bytes, max_size_bytes=MAX_FILE_SIZE_BYTES):
    """Return None when the size is acceptable, an error string otherwise."""
    if size_bytes <= 0:
        return "File size must be greater than 0 bytes"
    if size_bytes > max_size_bytes:
        return (
            f"File size ({_mb(size_bytes):.2f}MB) exceeds the "
            f"{_mb(max_size_bytes):.0f}MB limit"
        )
    return None


def validate_file(mime_type, size_bytes, max_size_bytes=MAX_FILE_SIZE_BYTES) -> FileValidationResult:
    normalized, type_error = validate_file_type(mime_type)
    size_error = validate_file_size(size_bytes, max_size_bytes)

    errors = [e for e in (type_error, size_error) if e]
    return FileValidationResult(
        valid=not errors,
        mime_type=normalized,
        size_bytes=size_bytes,
        errors=errors,
    )


def mime_to_file_type(mime_type):
    """Map an allowed MIME type to the submissions.file_type value."""
    return MIME_TO_FILE_TYPE.get((mime_type or "").strip().lower())
