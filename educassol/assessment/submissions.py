"""
Submission models plus the dashboard aggregation, filtering and realtime
merge rules.

Submission status is driven by the grading function
(uploaded -> processing -> graded | failed). Reads are tolerant: a status
outside that set is kept as-is and counted only in totals.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SUBMISSION_STATUSES = ('uploaded', 'processing', 'graded', 'failed')
FILE_TYPES = ('pdf', 'jpeg', 'png')

# Fields a realtime UPDATE is allowed to change on a local row
_MERGED_FIELDS = ('status', 'error_message', 'processed_at')


class ResultSummary(BaseModel):
    """The slice of a results row embedded in submission listings."""
    model_config = ConfigDict(extra="ignore")

    id: str
    total_score: Optional[float] = None
    ai_output: Optional[Dict[str, Any]] = None
    pdf_report_url: Optional[str] = None
    verification_token: Optional[str] = None
    graded_at: Optional[datetime] = None


class Submission(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    exam_id: str
    student_identifier: Optional[str] = None
    storage_path: str = ""
    file_type: Optional[str] = None
    file_size_bytes: int = 0
    status: str = 'uploaded'
    error_message: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    result: Optional[ResultSummary] = Field(default=None, alias="results")

    @field_validator("result", mode="before")
    @classmethod
    def _unwrap_embedded(cls, value):
        # PostgREST embeds one-to-one relations as an object or a 1-item list
        if isinstance(value, list):
            return value[0] if value else None
        return value

    @property
    def score(self) -> Optional[float]:
        return self.result.total_score if self.result else None


class SubmissionStats(BaseModel):
    uploaded: int = 0
    processing: int = 0
    graded: int = 0
    failed: int = 0
    total: int = 0


class SubmissionFilters(BaseModel):
    status: str = 'all'
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    search_term: str = ''


class SubmissionEvent(BaseModel):
    """A realtime change on the submissions table."""
    type: str  # INSERT | UPDATE
    record: Dict[str, Any]


def _get(item, name, default=None):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def aggregate_submission_stats(submissions) -> Dict[str, SubmissionStats]:
    """
    Count submissions per exam and status in one pass.

    Every submission increments ``total`` for its exam. Statuses outside the
    known set do not land in any bucket.
    """
    stats_map: Dict[str, SubmissionStats] = {}
    unknown = 0

    for sub in submissions:
        exam_id = _get(sub, 'exam_id')
        stats = stats_map.setdefault(exam_id, SubmissionStats())
        stats.total += 1

        status = _get(sub, 'status')
        if status in SUBMISSION_STATUSES:
            setattr(stats, status, getattr(stats, status) + 1)
        else:
            unknown += 1

    if unknown:
        logger.warning("%d submission(s) with unrecognized status counted in totals only", unknown)
    return stats_map


def has_active_filters(filters: SubmissionFilters) -> bool:
    return (
        filters.status != 'all'
        or filters.min_score is not None
        or filters.max_score is not None
        or filters.search_term.strip() != ''
    )


def _matches(sub, filters: SubmissionFilters, term: str) -> bool:
    status = _get(sub, 'status')
    if filters.status != 'all' and status != filters.status:
        return False

    if status == 'graded':
        result = _get(sub, 'result')
        score = _get(result, 'total_score') if result is not None else None
        if score is not None:
            if filters.min_score is not None and score < filters.min_score:
                return False
            if filters.max_score is not None and score > filters.max_score:
                return False

    if term:
        student = (_get(sub, 'student_identifier') or '').lower()
        if term not in student:
            return False
    return True


def filter_submissions(submissions, filters: Optional[SubmissionFilters] = None) -> list:
    """Subset matching every active filter. Default filters return the input unchanged."""
    filters = filters or SubmissionFilters()
    if not has_active_filters(filters):
        return list(submissions)
    term = filters.search_term.strip().lower()
    return [s for s in submissions if _matches(s, filters, term)]


def average_graded_score(submissions) -> Optional[float]:
    scores = []
    for sub in submissions:
        if _get(sub, 'status') != 'graded':
            continue
        result = _get(sub, 'result')
        score = _get(result, 'total_score') if result is not None else None
        if score is not None:
            scores.append(score)
    if not scores:
        return None
    return sum(scores) / len(scores)


def _parse_record(record) -> Optional[Submission]:
    try:
        return Submission.model_validate(record)
    except ValidationError as e:
        logger.warning("Ignoring malformed submission event: %s", e)
        return None


def apply_submission_event(state: List[Submission], event: SubmissionEvent,
                           exam_id: Optional[str] = None) -> List[Submission]:
    """
    Merge one realtime event into the local submission list.

    Returns a new list. Replaying an event yields the same state, so
    duplicate deliveries are harmless.
    """
    record = event.record or {}
    if exam_id is not None and record.get('exam_id') not in (None, exam_id):
        return list(state)

    sub_id = record.get('id')
    if not sub_id:
        return list(state)

    index = next((i for i, s in enumerate(state) if s.id == sub_id), None)
    kind = event.type.upper()

    if kind == 'INSERT':
        if index is not None:
            return _merge_at(state, index, record)
        parsed = _parse_record(record)
        return [parsed] + list(state) if parsed else list(state)

    if kind == 'UPDATE':
        if index is not None:
            return _merge_at(state, index, record)
        parsed = _parse_record(record)
        return list(state) + [parsed] if parsed else list(state)

    logger.debug("Unhandled submission event type: %s", event.type)
    return list(state)


def _merge_at(state, index, record):
    changes = {k: record[k] for k in _MERGED_FIELDS if k in record}
    current = state[index]
    merged = Submission.model_validate({
        **current.model_dump(by_alias=False),
        **changes,
        'result': current.result,
    })
    updated = list(state)
    updated[index] = merged
    return updated
