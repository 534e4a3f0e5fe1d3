"""
Result routes: grading review, teacher overrides, exports and the PDF report.
"""
import logging

from flask import Blueprint, Response, request, jsonify, g
from pydantic import ValidationError

from ..assessment.access_control import ExamAccessContext
from ..assessment.export import (
    csv_bytes,
    export_filename,
    generate_report_html,
    generate_report_pdf,
)
from ..assessment.grading_result import to_ai_output
from ..assessment.override import (
    apply_override,
    calculate_final_score,
    clear_override,
    count_overrides,
    get_effective_score,
)
from ..audit import audit_log
from ..services import get_backend, EdgeFunctionError, NotFoundError
from ..services import repository
from .helpers import current_access, denied, edge_error, validation_error

logger = logging.getLogger(__name__)

result_bp = Blueprint('results', __name__)

EXPORT_FORMATS = {
    'csv': 'text/csv; charset=utf-8',
    'html': 'text/html; charset=utf-8',
    'pdf': 'application/pdf',
}


def _result_payload(record):
    result = record.grading_result
    return {
        "id": record.id,
        "submission_id": record.submission_id,
        "exam_id": record.exam_id,
        "exam_title": record.exam_title,
        "student_identifier": record.student_identifier,
        "grading_result": to_ai_output(result),
        "effective_scores": {q.number: get_effective_score(result, q.number) for q in result.questions},
        "final_score": calculate_final_score(result),
        "max_score": result.max_score,
        "override_count": count_overrides(result),
        "pdf_report_url": record.pdf_report_url,
        "verification_token": record.verification_token,
        "graded_at": record.graded_at.isoformat() if record.graded_at else None,
    }


def _load(result_id, for_update=False):
    """Fetch a result and check the caller may see it (or edit it)."""
    record = repository.get_result(get_backend(), result_id)
    access = current_access()
    if for_update:
        check = access.guard(
            require_educator=True,
            exam_context=ExamAccessContext(
                exam_id=record.exam_id or '',
                educator_id=record.exam_educator_id,
                school_id=record.exam_school_id,
            ),
            access_type='update',
        )
    else:
        check = access.check_result_view_access(record.access_context())
    return record, check


@result_bp.route('/api/results/<result_id>', methods=['GET'])
def get_result(result_id):
    try:
        record, check = _load(result_id)
        if not check.allowed:
            return denied(check)
        return jsonify(_result_payload(record))
    except ValidationError as e:
        logger.error("Stored grading result %s is invalid", result_id)
        return validation_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Get result error")
        return jsonify({"error": str(e)}), 500


@result_bp.route('/api/results/<result_id>/overrides', methods=['PUT'])
def set_override(result_id):
    """
    Set the teacher's score for one question.

    Body: {"question_number": "1", "score": 4, "reason": "..."}.
    A score equal to the AI's removes the override.
    """
    try:
        data = request.get_json(silent=True) or {}
        question_number = str(data.get('question_number') or '').strip()
        if not question_number or data.get('score') is None:
            return jsonify({"error": "question_number and score are required"}), 400
        try:
            score = float(data['score'])
        except (TypeError, ValueError):
            return jsonify({"error": "score must be a number"}), 400

        record, check = _load(result_id, for_update=True)
        if not check.allowed:
            return denied(check)

        updated = apply_override(record.grading_result, question_number, score, reason=data.get('reason'))
        saved = repository.save_overrides(get_backend(), result_id, updated)
        audit_log("OVERRIDE_SCORE", f"result={result_id} question={question_number} score={score}", user=g.user_id)

        return jsonify(_result_payload(record.model_copy(update={"grading_result": saved})))
    except KeyError as e:
        return jsonify({"error": f"Question {e.args[0]} not found in result"}), 404
    except ValidationError as e:
        return validation_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Set override error")
        return jsonify({"error": str(e)}), 500


@result_bp.route('/api/results/<result_id>/overrides/<question_number>', methods=['DELETE'])
def remove_override(result_id, question_number):
    try:
        record, check = _load(result_id, for_update=True)
        if not check.allowed:
            return denied(check)

        updated = clear_override(record.grading_result, question_number)
        saved = repository.save_overrides(get_backend(), result_id, updated)
        audit_log("CLEAR_OVERRIDE", f"result={result_id} question={question_number}", user=g.user_id)

        return jsonify(_result_payload(record.model_copy(update={"grading_result": saved})))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Remove override error")
        return jsonify({"error": str(e)}), 500


@result_bp.route('/api/results/<result_id>/export', methods=['GET'])
def export_result(result_id):
    """Download the result as csv (default), html or pdf."""
    fmt = request.args.get('format', 'csv').lower()
    if fmt not in EXPORT_FORMATS:
        return jsonify({"error": f"Unsupported format: {fmt}"}), 400

    try:
        record, check = _load(result_id)
        if not check.allowed:
            return denied(check)

        result = record.grading_result
        if fmt == 'csv':
            body = csv_bytes(result, record.exam_title, record.student_identifier)
        elif fmt == 'html':
            body = generate_report_html(result, record.exam_title, record.student_identifier).encode('utf-8')
        else:
            body = generate_report_pdf(result, record.exam_title, record.student_identifier)

        filename = export_filename(result, record.student_identifier, ext=fmt)
        return Response(
            body,
            content_type=EXPORT_FORMATS[fmt],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Export result error")
        return jsonify({"error": str(e)}), 500


@result_bp.route('/api/results/<result_id>/report', methods=['POST'])
def generate_report(result_id):
    """Render the official PDF report through the generate-report function."""
    try:
        record, check = _load(result_id)
        if not check.allowed:
            return denied(check)

        pdf_url = get_backend().functions.generate_report(g.access_token, result_id)
        audit_log("GENERATE_REPORT", f"result={result_id}", user=g.user_id)
        return jsonify({"result_id": result_id, "pdf_url": pdf_url})
    except EdgeFunctionError as e:
        return edge_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Generate report error")
        return jsonify({"error": str(e)}), 500
