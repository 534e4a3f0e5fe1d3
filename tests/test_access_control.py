"""
Test: Access rules and the AccessController gate.
"""
import pytest

from educassol.assessment.access_control import (
    REASON_EXAM_UPDATE,
    REASON_EXAM_VIEW,
    REASON_NOT_AUTHENTICATED,
    REASON_NOT_EDUCATOR,
    REASON_RESULT_VIEW,
    REASON_SUBMISSION_CREATE,
    AccessController,
    ExamAccessContext,
    ResultAccessContext,
    SubmissionAccessContext,
    UserContext,
    can_create_exam,
    can_view_exam,
    categorize_exam_access,
    filter_accessible_exams,
)
from educassol.audit import get_audit_logs

from conftest import ADMIN_ID, OTHER_SCHOOL_ID, OTHER_TEACHER_ID, SCHOOL_ID, TEACHER_ID

EXAM = ExamAccessContext(exam_id="e1", educator_id=TEACHER_ID, school_id=SCHOOL_ID)
SUBMISSION = SubmissionAccessContext(
    submission_id="s1", exam_id="e1", exam_educator_id=TEACHER_ID, exam_school_id=SCHOOL_ID,
)
RESULT = ResultAccessContext(
    result_id="r1", submission_id="s1", exam_educator_id=TEACHER_ID, exam_school_id=SCHOOL_ID,
)


@pytest.fixture
def teacher():
    return UserContext(user_id=TEACHER_ID, school_id=SCHOOL_ID, roles=["teacher"])


@pytest.fixture
def other_teacher():
    return UserContext(user_id=OTHER_TEACHER_ID, school_id=SCHOOL_ID, roles=["teacher"])


@pytest.fixture
def school_admin():
    return UserContext(user_id=ADMIN_ID, school_id=SCHOOL_ID, roles=["school_admin"])


class TestRules:
    def test_owner_views(self, teacher):
        assert can_view_exam(teacher, EXAM)

    def test_same_school_teacher_cannot_view(self, other_teacher):
        assert not can_view_exam(other_teacher, EXAM)

    def test_school_admin_views_school_exams(self, school_admin):
        assert can_view_exam(school_admin, EXAM)

    def test_admin_of_other_school_denied(self):
        admin = UserContext(user_id=ADMIN_ID, school_id=OTHER_SCHOOL_ID, roles=["school_admin"])
        assert not can_view_exam(admin, EXAM)

    def test_admin_without_school_denied(self):
        admin = UserContext(user_id=ADMIN_ID, school_id=None, roles=["school_admin"])
        exam = ExamAccessContext(exam_id="e2", educator_id=TEACHER_ID, school_id=None)
        assert not can_view_exam(admin, exam)

    def test_create_requires_own_school(self, teacher):
        assert can_create_exam(teacher, EXAM)
        assert not can_create_exam(teacher, EXAM.model_copy(update={"school_id": OTHER_SCHOOL_ID}))

    def test_list_helpers(self, other_teacher):
        own = ExamAccessContext(exam_id="e9", educator_id=OTHER_TEACHER_ID, school_id=SCHOOL_ID)
        assert filter_accessible_exams(other_teacher, [EXAM, own]) == [own]
        split = categorize_exam_access(other_teacher, [EXAM, own])
        assert split["unauthorized"] == [EXAM]


class TestAccessController:
    def test_unauthenticated(self):
        check = AccessController(None).check_exam_view_access(EXAM)
        assert not check.allowed
        assert check.reason == REASON_NOT_AUTHENTICATED

    def test_non_educator_cannot_view_exam(self):
        student = UserContext(user_id=TEACHER_ID, school_id=SCHOOL_ID, roles=[])
        check = AccessController(student).check_exam_view_access(EXAM)
        assert check.reason == REASON_NOT_EDUCATOR

    def test_owner_allowed(self, teacher):
        controller = AccessController(teacher)
        assert controller.check_exam_view_access(EXAM).allowed
        assert controller.check_exam_update_access(EXAM).allowed
        assert controller.check_submission_create_access(SUBMISSION).allowed
        assert controller.check_result_view_access(RESULT).allowed

    def test_other_teacher_denied_with_reasons(self, other_teacher):
        controller = AccessController(other_teacher)
        assert controller.check_exam_view_access(EXAM).reason == REASON_EXAM_VIEW
        assert controller.check_exam_update_access(EXAM).reason == REASON_EXAM_UPDATE
        assert controller.check_submission_create_access(SUBMISSION).reason == REASON_SUBMISSION_CREATE
        assert controller.check_result_view_access(RESULT).reason == REASON_RESULT_VIEW

    def test_school_admin_views_but_cannot_edit(self, school_admin):
        controller = AccessController(school_admin)
        assert controller.check_exam_view_access(EXAM).allowed
        assert controller.check_submission_view_access(SUBMISSION).allowed
        assert not controller.check_exam_update_access(EXAM).allowed

    def test_flags(self, school_admin, teacher):
        assert AccessController(school_admin).is_school_admin()
        assert AccessController(school_admin).is_educator()
        assert not AccessController(teacher).is_school_admin()
        assert not AccessController(None).is_authenticated

    def test_denial_written_to_audit_log(self, other_teacher):
        AccessController(other_teacher).check_exam_view_access(EXAM)
        logs = get_audit_logs()
        assert logs[0]["action"] == "ACCESS_DENIED exam.view"
        assert logs[0]["user"] == OTHER_TEACHER_ID


class TestGuard:
    def test_loading(self, teacher):
        check = AccessController(teacher, loading=True).guard()
        assert check.reason == "loading"

    def test_role_only(self, teacher):
        assert AccessController(teacher).guard(require_educator=True).allowed

    def test_role_required(self):
        user = UserContext(user_id=TEACHER_ID, roles=[])
        assert AccessController(user).guard(require_educator=True).reason == REASON_NOT_EDUCATOR

    def test_exam_update(self, school_admin):
        check = AccessController(school_admin).guard(exam_context=EXAM, access_type="update")
        assert check.reason == REASON_EXAM_UPDATE

    def test_submission_create(self, other_teacher):
        check = AccessController(other_teacher).guard(submission_context=SUBMISSION, access_type="create")
        assert check.reason == REASON_SUBMISSION_CREATE

    def test_exam_checked_before_submission(self, other_teacher):
        check = AccessController(other_teacher).guard(exam_context=EXAM, submission_context=SUBMISSION)
        assert check.reason == REASON_EXAM_VIEW
