"""
Public grade verification (the QR code on printed reports) and the caller's
own access summary.
"""
import logging

from flask import Blueprint, request, jsonify, g

from ..assessment.verification import build_verification_payload, is_valid_verification_token
from ..services import get_backend
from ..services import repository
from .helpers import current_access

logger = logging.getLogger(__name__)

verify_bp = Blueprint('verify', __name__)


@verify_bp.route('/api/verify', methods=['GET'])
def verify_result():
    """
    Confirm a grade by verification token. No login required.

    Only the student's initials, exam title, graded date and score are returned.
    """
    token = (request.args.get('token') or '').strip()
    if not is_valid_verification_token(token):
        return jsonify({"valid": False, "error": "Token de verificação inválido"}), 400

    try:
        row = repository.find_result_by_token(get_backend(), token)
        if not row:
            return jsonify({"valid": False, "error": "Resultado não encontrado"}), 404
        return jsonify({"valid": True, **build_verification_payload(row)})
    except Exception as e:
        logger.exception("Verification error")
        return jsonify({"valid": False, "error": str(e)}), 500


@verify_bp.route('/api/me/access', methods=['GET'])
def my_access():
    try:
        access = current_access()
        user = access.user_context
        return jsonify({
            "user_id": user.user_id,
            "email": g.get('user_email', ''),
            "school_id": user.school_id,
            "roles": user.roles,
            "is_educator": access.is_educator(),
            "is_school_admin": access.is_school_admin(),
        })
    except Exception as e:
        logger.exception("Access summary error")
        return jsonify({"error": str(e)}), 500
