"""
Class routes. Teachers see and edit their own classes; school admins see and
edit every class in their school.
"""
import logging

from flask import Blueprint, request, jsonify, g
from pydantic import ValidationError

from ..assessment.access_control import AccessCheckResult
from ..services import get_backend, NotFoundError
from ..services import repository
from .helpers import current_access, denied, validation_error

logger = logging.getLogger(__name__)

class_bp = Blueprint('classes', __name__)

REASON_CLASS_EDIT = 'Você não tem permissão para editar esta turma'


def _can_edit(access, row) -> AccessCheckResult:
    check = access.guard(require_educator=True)
    if not check.allowed:
        return check
    user = access.user_context
    if row.get('teacher_id') == user.user_id:
        return check
    if access.is_school_admin() and row.get('school_id') and row.get('school_id') == user.school_id:
        return check
    return access.deny(REASON_CLASS_EDIT, 'class.edit', row.get('id'))


@class_bp.route('/api/classes', methods=['GET'])
def list_classes():
    try:
        access = current_access()
        check = access.guard(require_educator=True)
        if not check.allowed:
            return denied(check)

        user = access.user_context
        if access.is_school_admin():
            classes = repository.list_classes(get_backend(), school_id=user.school_id)
        else:
            classes = repository.list_classes(get_backend(), teacher_id=user.user_id)
        return jsonify({"classes": classes})
    except Exception as e:
        logger.exception("List classes error")
        return jsonify({"error": str(e)}), 500


@class_bp.route('/api/classes', methods=['POST'])
def create_class():
    try:
        access = current_access()
        check = access.guard(require_educator=True)
        if not check.allowed:
            return denied(check)

        row = repository.create_class(get_backend(), access.user_context, request.get_json(silent=True) or {})
        return jsonify({"class": row}), 201
    except ValidationError as e:
        return validation_error(e)
    except Exception as e:
        logger.exception("Create class error")
        return jsonify({"error": str(e)}), 500


@class_bp.route('/api/classes/<class_id>', methods=['PUT'])
def update_class(class_id):
    try:
        backend = get_backend()
        check = _can_edit(current_access(), repository.get_class(backend, class_id))
        if not check.allowed:
            return denied(check)

        row = repository.update_class(backend, class_id, request.get_json(silent=True) or {})
        return jsonify({"class": row})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Update class error")
        return jsonify({"error": str(e)}), 500


@class_bp.route('/api/classes/<class_id>', methods=['DELETE'])
def delete_class(class_id):
    try:
        backend = get_backend()
        check = _can_edit(current_access(), repository.get_class(backend, class_id))
        if not check.allowed:
            return denied(check)

        repository.delete_class(backend, class_id)
        logger.info("Class %s deleted by %s", class_id, g.user_id)
        return jsonify({"success": True})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logger.exception("Delete class error")
        return jsonify({"error": str(e)}), 500
