"""
Lesson plan routes. Plans are private to their author.
"""
import logging

from flask import Blueprint, request, jsonify, g

from ..services import get_backend, NotFoundError
from ..services import repository

logger = logging.getLogger(__name__)

lesson_plan_bp = Blueprint('lesson_plans', __name__)


@lesson_plan_bp.route('/api/lesson-plans', methods=['GET'])
def list_lesson_plans():
    """List the caller's plans. ?status=draft|planned|in-progress|completed, ?archived=1."""
    try:
        plans = repository.list_lesson_plans(
            get_backend(), g.user_id,
            status=request.args.get('status'),
            include_archived=request.args.get('archived') == '1',
        )
        return jsonify({"lesson_plans": plans})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("List lesson plans error")
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans/<plan_id>', methods=['GET'])
def get_lesson_plan(plan_id):
    try:
        return jsonify({"lesson_plan": repository.get_lesson_plan(get_backend(), plan_id, g.user_id)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Get lesson plan error")
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans/<plan_id>/archive', methods=['POST'])
def archive_lesson_plan(plan_id):
    try:
        plan = repository.archive_lesson_plan(get_backend(), plan_id, g.user_id)
        return jsonify({"lesson_plan": plan})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Archive lesson plan error")
        return jsonify({"error": str(e)}), 500
