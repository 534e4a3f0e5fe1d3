"""
Access control for exams, submissions and results.

These rules mirror the row-level security policies on the Supabase tables:

EXAMS
- Educators can create exams in their own school
- Educators can view/update/delete their own exams
- School admins can view every exam in their school

SUBMISSIONS / RESULTS
- The exam's educator can create and view them
- School admins can view them for exams in their school
- Results can also be verified publicly by verification token (see verification.py)

The database policies are the real boundary. The checks here decide what the
API shows and give a readable reason when it refuses.
"""
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ..audit import audit_log

logger = logging.getLogger(__name__)

EDUCATOR_ROLES = ('teacher', 'school_admin', 'district_admin', 'super_admin')

REASON_NOT_AUTHENTICATED = 'Você precisa estar autenticado para acessar este recurso'
REASON_NOT_EDUCATOR = 'Acesso restrito a educadores'
REASON_EXAM_VIEW = 'Você não tem permissão para visualizar esta prova'
REASON_EXAM_UPDATE = 'Você não tem permissão para editar esta prova'
REASON_SUBMISSION_VIEW = 'Você não tem permissão para visualizar esta submissão'
REASON_SUBMISSION_CREATE = 'Você não tem permissão para criar submissões nesta prova'
REASON_RESULT_VIEW = 'Você não tem permissão para visualizar este resultado'
REASON_SCHOOL_ADMIN = 'Acesso restrito a administradores da escola'


class UserContext(BaseModel):
    user_id: str
    school_id: Optional[str] = None
    roles: List[str] = Field(default_factory=list)


class ExamAccessContext(BaseModel):
    exam_id: str
    educator_id: str
    school_id: Optional[str] = None


class SubmissionAccessContext(BaseModel):
    submission_id: str
    exam_id: str
    exam_educator_id: str
    exam_school_id: Optional[str] = None


class ResultAccessContext(BaseModel):
    result_id: str
    submission_id: str
    exam_educator_id: str
    exam_school_id: Optional[str] = None
    verification_token: Optional[str] = None


class AccessCheckResult(BaseModel):
    allowed: bool
    reason: Optional[str] = None


# ============ Pure rules ============

def _is_school_admin_of(user: UserContext, school_id) -> bool:
    return 'school_admin' in user.roles and school_id is not None and school_id == user.school_id


def can_view_exam(user: UserContext, exam: ExamAccessContext) -> bool:
    if exam.educator_id == user.user_id:
        return True
    return _is_school_admin_of(user, exam.school_id)


def can_create_exam(user: UserContext, exam: ExamAccessContext) -> bool:
    return exam.educator_id == user.user_id and exam.school_id == user.school_id


def can_update_exam(user: UserContext, exam: ExamAccessContext) -> bool:
    return exam.educator_id == user.user_id


def can_delete_exam(user: UserContext, exam: ExamAccessContext) -> bool:
    return exam.educator_id == user.user_id


def can_view_submission(user: UserContext, submission: SubmissionAccessContext) -> bool:
    if submission.exam_educator_id == user.user_id:
        return True
    return _is_school_admin_of(user, submission.exam_school_id)


def can_create_submission(user: UserContext, submission: SubmissionAccessContext) -> bool:
    return submission.exam_educator_id == user.user_id


def can_view_result(user: UserContext, result: ResultAccessContext) -> bool:
    if result.exam_educator_id == user.user_id:
        return True
    return _is_school_admin_of(user, result.exam_school_id)


def filter_accessible_exams(user, exams):
    return [e for e in exams if can_view_exam(user, e)]


def filter_accessible_submissions(user, submissions):
    return [s for s in submissions if can_view_submission(user, s)]


def filter_accessible_results(user, results):
    return [r for r in results if can_view_result(user, r)]


def categorize_exam_access(user, exams) -> dict:
    authorized, unauthorized = [], []
    for exam in exams:
        (authorized if can_view_exam(user, exam) else unauthorized).append(exam)
    return {"authorized": authorized, "unauthorized": unauthorized}


# ============ Stateful gate ============

class AccessController:
    """
    Access decisions for one caller.

    States: loading (no lookup yet) -> authenticated or not -> educator role
    -> resource ownership -> allow or deny with a reason. Each denial is
    written to the log and the audit trail.
    """

    def __init__(self, user_context: Optional[UserContext] = None, loading: bool = False):
        self.user_context = user_context
        self.is_loading = loading

    @property
    def is_authenticated(self) -> bool:
        return self.user_context is not None

    def is_educator(self) -> bool:
        if not self.user_context:
            return False
        return any(role in EDUCATOR_ROLES for role in self.user_context.roles)

    def is_school_admin(self) -> bool:
        return bool(self.user_context) and 'school_admin' in self.user_context.roles

    def deny(self, reason, action, resource_id=None) -> AccessCheckResult:
        """Refuse with a reason, writing the refusal to the log and the audit trail."""
        user_id = self.user_context.user_id if self.user_context else 'anonymous'
        logger.warning("Access denied: user=%s action=%s resource=%s reason=%s",
                       user_id, action, resource_id, reason)
        audit_log(f"ACCESS_DENIED {action}", f"resource={resource_id}", user=user_id)
        return AccessCheckResult(allowed=False, reason=reason)

    def _precheck(self, action, resource_id, require_educator) -> Optional[AccessCheckResult]:
        if not self.user_context:
            return self.deny(REASON_NOT_AUTHENTICATED, action, resource_id)
        if require_educator and not self.is_educator():
            return self.deny(REASON_NOT_EDUCATOR, action, resource_id)
        return None

    def check_exam_view_access(self, exam: ExamAccessContext) -> AccessCheckResult:
        denied = self._precheck('exam.view', exam.exam_id, require_educator=True)
        if denied:
            return denied
        if not can_view_exam(self.user_context, exam):
            return self.deny(REASON_EXAM_VIEW, 'exam.view', exam.exam_id)
        return AccessCheckResult(allowed=True)

    def check_exam_update_access(self, exam: ExamAccessContext) -> AccessCheckResult:
        denied = self._precheck('exam.update', exam.exam_id, require_educator=True)
        if denied:
            return denied
        if not can_update_exam(self.user_context, exam):
            return self.deny(REASON_EXAM_UPDATE, 'exam.update', exam.exam_id)
        return AccessCheckResult(allowed=True)

    def check_submission_view_access(self, submission: SubmissionAccessContext) -> AccessCheckResult:
        denied = self._precheck('submission.view', submission.submission_id, require_educator=False)
        if denied:
            return denied
        if not can_view_submission(self.user_context, submission):
            return self.deny(REASON_SUBMISSION_VIEW, 'submission.view', submission.submission_id)
        return AccessCheckResult(allowed=True)

    def check_submission_create_access(self, submission: SubmissionAccessContext) -> AccessCheckResult:
        denied = self._precheck('submission.create', submission.exam_id, require_educator=True)
        if denied:
            return denied
        if not can_create_submission(self.user_context, submission):
            return self.deny(REASON_SUBMISSION_CREATE, 'submission.create', submission.exam_id)
        return AccessCheckResult(allowed=True)

    def check_result_view_access(self, result: ResultAccessContext) -> AccessCheckResult:
        denied = self._precheck('result.view', result.result_id, require_educator=False)
        if denied:
            return denied
        if not can_view_result(self.user_context, result):
            return self.deny(REASON_RESULT_VIEW, 'result.view', result.result_id)
        return AccessCheckResult(allowed=True)

    def guard(self, require_educator=False, exam_context=None, submission_context=None,
              access_type='view') -> AccessCheckResult:
        """
        Run the full gate the way a page wrapper would before rendering.

        Exam context is checked first; submission context second. With no
        context only authentication and (optionally) role are checked.
        """
        if self.is_loading:
            return AccessCheckResult(allowed=False, reason='loading')

        denied = self._precheck('guard', None, require_educator)
        if denied:
            return denied

        if exam_context is not None:
            if access_type == 'update':
                check = self.check_exam_update_access(exam_context)
            else:
                check = self.check_exam_view_access(exam_context)
            if not check.allowed:
                return check

        if submission_context is not None:
            if access_type == 'create':
                check = self.check_submission_create_access(submission_context)
            else:
                check = self.check_submission_view_access(submission_context)
            if not check.allowed:
                return check

        return AccessCheckResult(allowed=True)
