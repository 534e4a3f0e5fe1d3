"""
Shared pieces for the route modules: the caller's access controller and the
standard error responses.
"""
from flask import g, jsonify

from ..assessment.access_control import AccessController
from ..assessment.validation import format_errors
from ..services import get_backend
from ..services.repository import load_user_context


def current_access() -> AccessController:
    """Access controller for the authenticated caller, loaded once per request."""
    if 'access' not in g:
        user = load_user_context(get_backend(), g.user_id)
        g.access = AccessController(user)
    return g.access


def denied(check):
    return jsonify({"error": check.reason}), 403


def validation_error(exc):
    return jsonify({"error": "Validation failed", "details": format_errors(exc)}), 400


def edge_error(exc):
    # Client errors from the function pass through; everything else is a bad gateway
    status = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else 502
    return jsonify({"error": str(exc)}), status


def optional_float(value):
    if value is None or str(value).strip() == '':
        return None
    return float(value)
