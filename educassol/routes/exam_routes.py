"""
Exam routes: CRUD and the per-exam submission dashboard.
"""
import logging

from flask import Blueprint, request, jsonify, g
from pydantic import ValidationError

from ..audit import audit_log
from ..services import get_backend, ExamHasSubmissionsError, NotFoundError
from ..services import repository
from .helpers import current_access, denied, validation_error

logger = logging.getLogger(__name__)

exam_bp = Blueprint('exams', __name__)


@exam_bp.route('/api/exams', methods=['GET'])
def list_exams():
    """List the caller's exams, optionally by status, with submission counts."""
    try:
        access = current_access()
        check = access.guard(require_educator=True)
        if not check.allowed:
            return denied(check)

        exams = repository.list_exams(get_backend(), g.user_id, status=request.args.get('status'))
        return jsonify({"exams": exams})
    except Exception as e:
        logger.exception("List exams error")
        return jsonify({"error": str(e)}), 500


@exam_bp.route('/api/exams/dashboard', methods=['GET'])
def exam_dashboard():
    try:
        access = current_access()
        check = access.guard(require_educator=True)
        if not check.allowed:
            return denied(check)

        return jsonify({"exams": repository.exam_dashboard(get_backend(), g.user_id)})
    except Exception as e:
        logger.exception("Exam dashboard error")
        return jsonify({"error": str(e)}), 500


@exam_bp.route('/api/exams', methods=['POST'])
def create_exam():
    """Create a draft exam. The rubric's total must equal the sum of its questions."""
    try:
        access = current_access()
        check = access.guard(require_educator=True)
        if not check.allowed:
            return denied(check)

        data = request.get_json(silent=True) or {}
        exam = repository.create_exam(get_backend(), access.user_context, data)
        audit_log("CREATE_EXAM", f"exam={exam.id} title={exam.title}", user=g.user_id)
        return jsonify({"exam": exam.model_dump(mode='json')}), 201
    except ValidationError as e:
        return validation_error(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Create exam error")
        return jsonify({"error": str(e)}), 500


@exam_bp.route('/api/exams/<exam_id>', methods=['GET'])
def get_exam(exam_id):
    try:
        exam = repository.get_exam(get_backend(), exam_id)
        check = current_access().check_exam_view_access(exam.access_context())
        if not check.allowed:
            return denied(check)
        return jsonify({"exam": exam.model_dump(mode='json')})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Get exam error")
        return jsonify({"error": str(e)}), 500


@exam_bp.route('/api/exams/<exam_id>', methods=['PUT'])
def update_exam(exam_id):
    try:
        backend = get_backend()
        exam = repository.get_exam(backend, exam_id)
        check = current_access().check_exam_update_access(exam.access_context())
        if not check.allowed:
            return denied(check)

        updated = repository.update_exam(backend, exam_id, request.get_json(silent=True) or {})
        audit_log("UPDATE_EXAM", f"exam={exam_id}", user=g.user_id)
        return jsonify({"exam": updated.model_dump(mode='json')})
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Update exam error")
        return jsonify({"error": str(e)}), 500


@exam_bp.route('/api/exams/<exam_id>', methods=['DELETE'])
def delete_exam(exam_id):
    """Delete an exam. Refused with 409 once it has submissions."""
    try:
        backend = get_backend()
        exam = repository.get_exam(backend, exam_id)
        check = current_access().check_exam_update_access(exam.access_context())
        if not check.allowed:
            return denied(check)

        repository.delete_exam(backend, exam_id)
        audit_log("DELETE_EXAM", f"exam={exam_id}", user=g.user_id)
        return jsonify({"success": True})
    except ExamHasSubmissionsError as e:
        return jsonify({"error": str(e), "submission_count": e.count}), 409
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Delete exam error")
        return jsonify({"error": str(e)}), 500
