"""
Storage object paths for uploaded submissions.

Layout: ``user_{educator_id}/exam_{exam_id}/{timestamp_ms}_{filename}``.
The leading ``user_`` segment is what the bucket's storage policy matches on.
"""
import re
import time

UUID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)
_PATH_RE = re.compile(r'^user_([0-9a-f-]+)/exam_([0-9a-f-]+)/(\d+)_(.+)$', re.IGNORECASE)


class StoragePathError(ValueError):
    pass


def is_valid_uuid(value) -> bool:
    return bool(value) and isinstance(value, str) and UUID_RE.match(value) is not None


def sanitize_filename(filename: str) -> str:
    cleaned = re.sub(r'[/\\:*?"<>|]', '_', filename)
    cleaned = re.sub(r'\s+', '_', cleaned)
    cleaned = re.sub(r'_{2,}', '_', cleaned)
    return cleaned.strip()


def generate_storage_path(educator_id, exam_id, filename, timestamp=None) -> str:
    if not is_valid_uuid(educator_id):
        raise StoragePathError("Invalid educator ID: must be a valid UUID")
    if not is_valid_uuid(exam_id):
        raise StoragePathError("Invalid exam ID: must be a valid UUID")
    if not filename or not filename.strip():
        raise StoragePathError("Filename is required")

    safe_name = sanitize_filename(filename.strip())
    if not safe_name.strip('_'):
        raise StoragePathError("Filename contains only invalid characters")

    if timestamp is None:
        timestamp = int(time.time() * 1000)
    return f"user_{educator_id}/exam_{exam_id}/{timestamp}_{safe_name}"


def parse_storage_path(path: str):
    """Split a storage path into its parts, or None if it doesn't match the layout."""
    match = _PATH_RE.match(path or "")
    if not match:
        return None
    educator_id, exam_id, timestamp, filename = match.groups()
    if not is_valid_uuid(educator_id) or not is_valid_uuid(exam_id):
        return None
    return {
        "educator_id": educator_id,
        "exam_id": exam_id,
        "timestamp": int(timestamp),
        "filename": filename,
    }
