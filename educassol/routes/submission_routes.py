"""
Submission routes: listing with filters, batch upload, and grading.

Uploads go through the upload-exam function by default. ``?mode=direct``
writes straight to storage and the submissions table instead.
"""
import logging

from flask import Blueprint, request, jsonify, g

from ..assessment.storage_path import StoragePathError
from ..assessment.submissions import (
    SubmissionFilters,
    aggregate_submission_stats,
    filter_submissions,
)
from ..audit import audit_log
from ..services import get_backend, EdgeFunctionError, NotFoundError
from ..services import repository
from ..services.uploads import (
    FileRejectedError,
    UploadItem,
    UploadOutcome,
    signed_url,
    store_submission,
    upload_files,
)
from .helpers import current_access, denied, edge_error, optional_float

logger = logging.getLogger(__name__)

submission_bp = Blueprint('submissions', __name__)


@submission_bp.route('/api/exams/<exam_id>/submissions', methods=['GET'])
def list_submissions(exam_id):
    """
    List an exam's submissions, newest first.

    Query params: status, min_score, max_score, q (student search).
    Stats are always computed over the unfiltered list.
    """
    try:
        filters = SubmissionFilters(
            status=request.args.get('status') or 'all',
            min_score=optional_float(request.args.get('min_score')),
            max_score=optional_float(request.args.get('max_score')),
            search_term=request.args.get('q', ''),
        )
    except ValueError:
        return jsonify({"error": "min_score and max_score must be numbers"}), 400

    try:
        backend = get_backend()
        exam = repository.get_exam(backend, exam_id)
        check = current_access().check_exam_view_access(exam.access_context())
        if not check.allowed:
            return denied(check)

        submissions = repository.list_submissions(backend, exam_id)
        visible = filter_submissions(submissions, filters)
        stats = aggregate_submission_stats(submissions).get(exam_id)

        return jsonify({
            "submissions": [s.model_dump(mode='json') for s in visible],
            "stats": stats.model_dump() if stats else None,
            "total": len(submissions),
        })
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("List submissions error")
        return jsonify({"error": str(e)}), 500


def _direct_upload(backend, exam, items):
    outcomes = []
    for item in items:
        try:
            sub = store_submission(backend, exam.educator_id, exam.id, item)
            outcomes.append(UploadOutcome(filename=item.filename, status='success', submission_id=sub.id))
        except (FileRejectedError, StoragePathError) as e:
            outcomes.append(UploadOutcome(filename=item.filename, status='error', error=str(e)))
        except Exception as e:
            logger.error("Direct upload of %s failed: %s", item.filename, e)
            outcomes.append(UploadOutcome(filename=item.filename, status='error', error=str(e)))
    return outcomes


@submission_bp.route('/api/exams/<exam_id>/submissions', methods=['POST'])
def upload_submissions(exam_id):
    """
    Upload one or more files (multipart ``file`` parts).

    ``student_identifier`` form values pair with files by position.
    Each file gets its own outcome; a failure does not stop the rest.
    """
    try:
        backend = get_backend()
        exam = repository.get_exam(backend, exam_id)
        check = current_access().check_submission_create_access(exam.submission_context())
        if not check.allowed:
            return denied(check)

        files = request.files.getlist('file')
        if not files:
            return jsonify({"error": "No files provided"}), 400

        identifiers = request.form.getlist('student_identifier')
        items = []
        for i, f in enumerate(files):
            items.append(UploadItem(
                filename=f.filename or 'arquivo',
                mime_type=f.mimetype or '',
                data=f.read(),
                student_identifier=identifiers[i] if i < len(identifiers) else None,
            ))

        if request.args.get('mode') == 'direct':
            outcomes = _direct_upload(backend, exam, items)
        else:
            outcomes = upload_files(backend.functions, g.access_token, exam_id, items)

        succeeded = sum(1 for o in outcomes if o.status == 'success')
        audit_log("UPLOAD_SUBMISSIONS", f"exam={exam_id} ok={succeeded} failed={len(outcomes) - succeeded}",
                  user=g.user_id)
        return jsonify({
            "results": [o.model_dump() for o in outcomes],
            "uploaded": succeeded,
            "failed": len(outcomes) - succeeded,
        }), 200 if succeeded else 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Upload submissions error")
        return jsonify({"error": str(e)}), 500


@submission_bp.route('/api/submissions/<submission_id>', methods=['GET'])
def get_submission(submission_id):
    """A submission with a temporary download URL for its file."""
    try:
        backend = get_backend()
        sub = repository.get_submission(backend, submission_id)
        exam = repository.get_exam(backend, sub.exam_id)
        check = current_access().check_submission_view_access(exam.submission_context(sub.id))
        if not check.allowed:
            return denied(check)

        file_url = signed_url(backend, sub.storage_path) if sub.storage_path else None
        return jsonify({"submission": sub.model_dump(mode='json'), "file_url": file_url})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Get submission error")
        return jsonify({"error": str(e)}), 500


@submission_bp.route('/api/submissions/<submission_id>/grade', methods=['POST'])
def grade_submission(submission_id):
    """Run AI grading for a submission through the analyze-exam function."""
    try:
        backend = get_backend()
        sub = repository.get_submission(backend, submission_id)
        exam = repository.get_exam(backend, sub.exam_id)
        check = current_access().check_submission_create_access(exam.submission_context(sub.id))
        if not check.allowed:
            return denied(check)

        total_score = backend.functions.analyze_exam(g.access_token, submission_id)
        audit_log("GRADE_SUBMISSION", f"submission={submission_id} score={total_score}", user=g.user_id)
        return jsonify({"submission_id": submission_id, "total_score": total_score})
    except EdgeFunctionError as e:
        return edge_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Grade submission error")
        return jsonify({"error": str(e)}), 500
