"""
Client for the Supabase serverless functions that do the heavy lifting:

- upload-exam: stores a submission file and creates its row
- analyze-exam: runs AI grading for a submission
- generate-report: renders the PDF report for a result

Every call forwards the caller's bearer token so the functions run with the
teacher's permissions.
"""
import logging

import requests

from ..config import config

logger = logging.getLogger(__name__)


class EdgeFunctionError(Exception):
    """A serverless function answered with an error or could not be reached."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class EdgeFunctionClient:

    def __init__(self, base_url=None, timeout=None, session=None):
        self.base_url = (base_url if base_url is not None else config.functions_url).rstrip('/')
        self.timeout = timeout or config.request_timeout
        self.session = session or requests.Session()

    def _url(self, name):
        if not self.base_url:
            raise EdgeFunctionError("Serverless functions URL not configured")
        return f"{self.base_url}/{name}"

    def _call(self, name, token, **kwargs):
        headers = {"Authorization": "Bearer " + token}
        try:
            response = self.session.post(self._url(name), headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s request failed: %s", name, e)
            raise EdgeFunctionError(f"{name} unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get("error") or f"{name} failed with HTTP {response.status_code}"
            logger.warning("%s returned %s: %s", name, response.status_code, message)
            raise EdgeFunctionError(message, status_code=response.status_code)
        return body

    def upload_exam(self, token, file_bytes, filename, mime_type, exam_id, student_identifier=None):
        """Upload one submission file. Returns the new submission id."""
        data = {"exam_id": exam_id}
        if student_identifier and student_identifier.strip():
            data["student_identifier"] = student_identifier.strip()
        body = self._call(
            "upload-exam", token,
            files={"file": (filename, file_bytes, mime_type)},
            data=data,
        )
        return body.get("submission_id")

    def analyze_exam(self, token, submission_id):
        """Grade a submission. Returns the total score reported by the function."""
        body = self._call("analyze-exam", token, json={"submission_id": submission_id})
        return body.get("total_score")

    def generate_report(self, token, result_id):
        """Render the PDF report for a result. Returns its URL."""
        body = self._call("generate-report", token, json={"result_id": result_id})
        return body.get("pdf_url")

    def close(self):
        self.session.close()
