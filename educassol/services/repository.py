"""
Table access for exams, submissions, results, classes and lesson plans.

Every function takes the BackendClient first. Rows are parsed through the
assessment models on the way in and serialized through them on the way out.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..assessment.access_control import ResultAccessContext, UserContext
from ..assessment.exam import Exam, ExamCreate, ExamUpdate
from ..assessment.grading_result import GradingResult, to_ai_output
from ..assessment.override import sync_total_score
from ..assessment.submissions import Submission, aggregate_submission_stats, average_graded_score

logger = logging.getLogger(__name__)

EXAM_COLUMNS = 'id, title, description, status, rubric, created_at, educator_id, school_id, class_id'
SUBMISSION_COLUMNS = (
    'id, exam_id, student_identifier, storage_path, file_type, file_size_bytes, status, '
    'error_message, uploaded_at, processed_at, '
    'results(id, total_score, ai_output, pdf_report_url, verification_token, graded_at)'
)
RESULT_COLUMNS = (
    'id, submission_id, ai_output, total_score, pdf_report_url, verification_token, graded_at, '
    'submission:submissions!inner(id, student_identifier, exam:exams!inner(id, title, educator_id, school_id))'
)
LESSON_PLAN_STATUSES = ('draft', 'planned', 'in-progress', 'completed')


class NotFoundError(Exception):
    pass


class ExamHasSubmissionsError(Exception):
    """Exams with submissions cannot be deleted."""

    def __init__(self, exam_id, count):
        super().__init__(f"Exam {exam_id} has {count} submission(s) and cannot be deleted")
        self.exam_id = exam_id
        self.count = count


class ResultRecord(BaseModel):
    """A results row joined with the owning submission and exam."""
    id: str
    submission_id: str
    grading_result: GradingResult
    pdf_report_url: Optional[str] = None
    verification_token: Optional[str] = None
    graded_at: Optional[datetime] = None
    student_identifier: Optional[str] = None
    exam_id: Optional[str] = None
    exam_title: Optional[str] = None
    exam_educator_id: str = ''
    exam_school_id: Optional[str] = None

    def access_context(self) -> ResultAccessContext:
        return ResultAccessContext(
            result_id=self.id,
            submission_id=self.submission_id,
            exam_educator_id=self.exam_educator_id,
            exam_school_id=self.exam_school_id,
            verification_token=self.verification_token,
        )


class ClassInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    grade: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    teacher_id: Optional[str] = None


def _first(response) -> Optional[Dict[str, Any]]:
    data = response.data or []
    return data[0] if data else None


def _embedded(value):
    # PostgREST returns one-to-one embeds as an object or a 1-item list
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


# ============ Profiles / Roles ============

def load_user_context(backend, user_id) -> UserContext:
    """School and roles of a user, as the access checks need them."""
    profile = _first(backend.table('profiles').select('school_id').eq('id', user_id).limit(1).execute())
    roles = backend.table('user_roles').select('role').eq('user_id', user_id).execute()
    return UserContext(
        user_id=user_id,
        school_id=(profile or {}).get('school_id'),
        roles=[r['role'] for r in (roles.data or []) if r.get('role')],
    )


# ============ Exams ============

def count_submissions(backend, exam_id) -> int:
    response = backend.table('submissions').select('id').eq('exam_id', exam_id).execute()
    return len(response.data or [])


def list_exams(backend, educator_id, status=None) -> List[dict]:
    """Exams of an educator, newest first, each with its submission count."""
    query = backend.table('exams').select(EXAM_COLUMNS).eq('educator_id', educator_id)
    if status and status != 'all':
        query = query.eq('status', status)
    rows = query.order('created_at', desc=True).execute().data or []

    exams = []
    for row in rows:
        try:
            exams.append(Exam.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping exam %s with invalid stored data: %s", row.get('id'), e)

    counts: Dict[str, int] = {}
    if exams:
        subs = backend.table('submissions').select('exam_id').in_('exam_id', [e.id for e in exams]).execute()
        for sub in subs.data or []:
            counts[sub['exam_id']] = counts.get(sub['exam_id'], 0) + 1

    return [{**e.model_dump(mode='json'), 'submission_count': counts.get(e.id, 0)} for e in exams]


def get_exam(backend, exam_id) -> Exam:
    row = _first(backend.table('exams').select(EXAM_COLUMNS).eq('id', exam_id).limit(1).execute())
    if not row:
        raise NotFoundError(f"Exam {exam_id} not found")
    return Exam.model_validate(row)


def create_exam(backend, user: UserContext, data: dict) -> Exam:
    """Validate and insert a new exam owned by ``user`` in their school."""
    payload = ExamCreate.model_validate(data)
    if not user.school_id:
        raise ValueError("User has no school; exams must belong to a school")

    response = backend.table('exams').insert({
        'title': payload.title,
        'description': payload.description,
        'rubric': payload.rubric.model_dump(mode='json', exclude_none=True),
        'status': 'draft',
        'class_id': payload.class_id,
        'educator_id': user.user_id,
        'school_id': user.school_id,
    }).execute()
    row = _first(response)
    if not row:
        raise RuntimeError("Failed to create exam")
    logger.info("Created exam %s for educator %s", row.get('id'), user.user_id)
    return Exam.model_validate(row)


def update_exam(backend, exam_id, data: dict) -> Exam:
    payload = ExamUpdate.model_validate(data)
    changes = payload.model_dump(mode='json', exclude_unset=True, exclude_none=True)
    if not changes:
        return get_exam(backend, exam_id)

    response = backend.table('exams').update(changes).eq('id', exam_id).execute()
    row = _first(response)
    if not row:
        raise NotFoundError(f"Exam {exam_id} not found")
    return Exam.model_validate(row)


def delete_exam(backend, exam_id) -> None:
    count = count_submissions(backend, exam_id)
    if count > 0:
        raise ExamHasSubmissionsError(exam_id, count)
    backend.table('exams').delete().eq('id', exam_id).execute()
    logger.info("Deleted exam %s", exam_id)


def exam_dashboard(backend, educator_id) -> List[dict]:
    """
    Per-exam submission stats and average graded score for an educator.

    One query for exams and one for all their submissions; counting happens
    here rather than with a query per exam.
    """
    exams = list_exams(backend, educator_id)
    if not exams:
        return []

    rows = backend.table('submissions').select(
        'exam_id, status, results(total_score)'
    ).in_('exam_id', [e['id'] for e in exams]).execute().data or []
    subs = [{'exam_id': r.get('exam_id'), 'status': r.get('status'), 'result': _embedded(r.get('results'))}
            for r in rows]

    stats = aggregate_submission_stats(subs)
    dashboard = []
    for exam in exams:
        exam_stats = stats.get(exam['id'])
        exam_subs = [s for s in subs if s['exam_id'] == exam['id']]
        dashboard.append({
            'exam': exam,
            'stats': exam_stats.model_dump() if exam_stats else None,
            'average_score': average_graded_score(exam_subs),
        })
    return dashboard


# ============ Submissions ============

def list_submissions(backend, exam_id) -> List[Submission]:
    rows = backend.table('submissions').select(SUBMISSION_COLUMNS).eq(
        'exam_id', exam_id
    ).order('uploaded_at', desc=True).execute().data or []
    return [Submission.model_validate(row) for row in rows]


def get_submission(backend, submission_id) -> Submission:
    row = _first(backend.table('submissions').select(SUBMISSION_COLUMNS).eq('id', submission_id).limit(1).execute())
    if not row:
        raise NotFoundError(f"Submission {submission_id} not found")
    return Submission.model_validate(row)


def create_submission(backend, exam_id, storage_path, file_type, file_size_bytes,
                      student_identifier=None) -> Submission:
    response = backend.table('submissions').insert({
        'exam_id': exam_id,
        'storage_path': storage_path,
        'file_type': file_type,
        'file_size_bytes': file_size_bytes,
        'student_identifier': student_identifier or None,
        'status': 'uploaded',
    }).execute()
    row = _first(response)
    if not row:
        raise RuntimeError("Failed to create submission record")
    return Submission.model_validate(row)


# ============ Results ============

def _result_record(row) -> ResultRecord:
    submission = _embedded(row.get('submission')) or {}
    exam = _embedded(submission.get('exam')) or {}
    return ResultRecord(
        id=row['id'],
        submission_id=row['submission_id'],
        grading_result=GradingResult.model_validate(row.get('ai_output') or {}),
        pdf_report_url=row.get('pdf_report_url'),
        verification_token=row.get('verification_token'),
        graded_at=row.get('graded_at'),
        student_identifier=submission.get('student_identifier'),
        exam_id=exam.get('id'),
        exam_title=exam.get('title'),
        exam_educator_id=exam.get('educator_id') or '',
        exam_school_id=exam.get('school_id'),
    )


def get_result(backend, result_id) -> ResultRecord:
    row = _first(backend.table('results').select(RESULT_COLUMNS).eq('id', result_id).limit(1).execute())
    if not row:
        raise NotFoundError(f"Result {result_id} not found")
    return _result_record(row)


def get_result_for_submission(backend, submission_id) -> ResultRecord:
    row = _first(backend.table('results').select(RESULT_COLUMNS).eq(
        'submission_id', submission_id
    ).limit(1).execute())
    if not row:
        raise NotFoundError(f"No result for submission {submission_id}")
    return _result_record(row)


def save_overrides(backend, result_id, grading_result: GradingResult) -> GradingResult:
    """
    Persist a grading result after overrides changed.

    The whole ai_output is written back. ``total_score`` inside it is synced
    to the final score so the generated column follows the teacher's grade.
    """
    synced = sync_total_score(grading_result)
    response = backend.table('results').update({'ai_output': to_ai_output(synced)}).eq('id', result_id).execute()
    if not response.data:
        raise NotFoundError(f"Result {result_id} not found")
    logger.info("Saved %d override(s) on result %s", len(synced.overrides), result_id)
    return synced


def find_result_by_token(backend, token) -> Optional[dict]:
    """Raw row for public verification, with the student and exam title."""
    return _first(backend.table('results').select(
        'id, ai_output, total_score, graded_at, submission:submissions!inner(student_identifier, exam:exams!inner(title))'
    ).eq('verification_token', token).limit(1).execute())


# ============ Classes ============

def list_classes(backend, school_id=None, teacher_id=None) -> List[dict]:
    query = backend.table('classes').select('id, school_id, grade, subject, teacher_id')
    if school_id:
        query = query.eq('school_id', school_id)
    if teacher_id:
        query = query.eq('teacher_id', teacher_id)
    return query.order('grade').execute().data or []


def create_class(backend, user: UserContext, data: dict) -> dict:
    payload = ClassInput.model_validate(data)
    row = _first(backend.table('classes').insert({
        'grade': payload.grade,
        'subject': payload.subject,
        'school_id': user.school_id,
        'teacher_id': payload.teacher_id or user.user_id,
    }).execute())
    if not row:
        raise RuntimeError("Failed to create class")
    return row


def get_class(backend, class_id) -> dict:
    row = _first(backend.table('classes').select('*').eq('id', class_id).limit(1).execute())
    if not row:
        raise NotFoundError(f"Class {class_id} not found")
    return row


def update_class(backend, class_id, data: dict) -> dict:
    changes = {k: data[k] for k in ('grade', 'subject', 'teacher_id') if data.get(k)}
    if not changes:
        return get_class(backend, class_id)
    row = _first(backend.table('classes').update(changes).eq('id', class_id).execute())
    if not row:
        raise NotFoundError(f"Class {class_id} not found")
    return row


def delete_class(backend, class_id) -> None:
    backend.table('classes').delete().eq('id', class_id).execute()


# ============ Lesson plans ============

def list_lesson_plans(backend, user_id, status=None, include_archived=False) -> List[dict]:
    query = backend.table('lesson_plans').select('*').eq('user_id', user_id)
    if status and status != 'all':
        if status not in LESSON_PLAN_STATUSES:
            raise ValueError(f"Invalid lesson plan status: {status}")
        query = query.eq('status', status)
    if not include_archived:
        query = query.is_('archived_at', 'null')
    return query.order('date', desc=True).execute().data or []


def get_lesson_plan(backend, plan_id, user_id) -> dict:
    row = _first(backend.table('lesson_plans').select('*').eq('id', plan_id).eq('user_id', user_id).limit(1).execute())
    if not row:
        raise NotFoundError(f"Lesson plan {plan_id} not found")
    return row


def archive_lesson_plan(backend, plan_id, user_id) -> dict:
    row = _first(backend.table('lesson_plans').update(
        {'archived_at': _now_iso()}
    ).eq('id', plan_id).eq('user_id', user_id).execute())
    if not row:
        raise NotFoundError(f"Lesson plan {plan_id} not found")
    return row
