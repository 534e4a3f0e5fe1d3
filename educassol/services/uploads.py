"""
Submission uploads.

``upload_files`` sends files one at a time through the upload-exam function
and reports an outcome per file; one bad file never stops the batch.
``store_submission`` writes straight to storage and the submissions table,
removing the stored object again when the insert fails.
"""
import logging
from typing import List, Optional

import requests
from pydantic import BaseModel

from ..assessment.file_validation import mime_to_file_type, validate_file
from ..assessment.storage_path import generate_storage_path
from ..config import get_settings
from . import repository
from .edge_functions import EdgeFunctionError

logger = logging.getLogger(__name__)


class UploadItem(BaseModel):
    filename: str
    mime_type: str
    data: bytes
    student_identifier: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


class UploadOutcome(BaseModel):
    filename: str
    status: str  # success | error
    submission_id: Optional[str] = None
    error: Optional[str] = None


class FileRejectedError(ValueError):
    def __init__(self, errors):
        super().__init__('; '.join(errors))
        self.errors = errors


def _check(item: UploadItem, max_size_bytes):
    validation = validate_file(item.mime_type, item.size, max_size_bytes)
    if not validation.valid:
        raise FileRejectedError(validation.errors)
    return validation.mime_type


def upload_files(functions, token, exam_id, items: List[UploadItem],
                 max_size_bytes=None) -> List[UploadOutcome]:
    """Upload each file in order. Validation runs before any network call."""
    max_size_bytes = max_size_bytes or get_settings().max_file_size_bytes
    outcomes = []

    for item in items:
        try:
            mime_type = _check(item, max_size_bytes)
            submission_id = functions.upload_exam(
                token, item.data, item.filename, mime_type, exam_id,
                student_identifier=item.student_identifier,
            )
            outcomes.append(UploadOutcome(filename=item.filename, status='success',
                                          submission_id=submission_id))
            logger.info("Uploaded %s to exam %s as submission %s", item.filename, exam_id, submission_id)
        except FileRejectedError as e:
            outcomes.append(UploadOutcome(filename=item.filename, status='error', error=str(e)))
        except (EdgeFunctionError, requests.RequestException) as e:
            logger.warning("Upload of %s failed: %s", item.filename, e)
            outcomes.append(UploadOutcome(filename=item.filename, status='error', error=str(e)))

    return outcomes


def store_submission(backend, educator_id, exam_id, item: UploadItem, max_size_bytes=None):
    """
    Upload a file to the submissions bucket and create its row.

    Raises:
        FileRejectedError: type or size not accepted (nothing is stored).
        StoragePathError: ids are not UUIDs or the filename is unusable.
    """
    mime_type = _check(item, max_size_bytes or get_settings().max_file_size_bytes)
    path = generate_storage_path(educator_id, exam_id, item.filename)
    bucket = backend.storage.from_(backend.bucket)

    bucket.upload(path, item.data, {"content-type": mime_type, "upsert": "false"})

    try:
        return repository.create_submission(
            backend, exam_id, path, mime_to_file_type(mime_type), item.size,
            student_identifier=item.student_identifier,
        )
    except Exception:
        try:
            bucket.remove([path])
        except Exception as cleanup_error:
            logger.error("Failed to clean up orphaned upload %s: %s", path, cleanup_error)
        raise


def signed_url(backend, storage_path, expires_in=None) -> Optional[str]:
    """Temporary download URL for a stored submission file."""
    response = backend.storage.from_(backend.bucket).create_signed_url(
        storage_path, expires_in or get_settings().signed_url_ttl_seconds
    )
    if isinstance(response, dict):
        return response.get('signedURL') or response.get('signedUrl')
    return None
