#!/usr/bin/env python3
"""
Educa Sol - Automated Exam Grading API
======================================
Run: python3 -m educassol.app
Then call: http://localhost:3000/api/health
"""
import logging

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .assessment.access_control import REASON_SCHOOL_ADMIN
from .audit import get_audit_logs
from .auth import init_auth
from .config import config as default_config, HOST, PORT, DEBUG
from .routes import register_routes
from .routes.helpers import current_access, denied
from .services.backend import BackendClient, EXTENSION_KEY

logger = logging.getLogger(__name__)


def create_app(config=None, backend=None):
    """
    Build the Flask app.

    ``config`` overrides the default Config instance; ``backend`` injects a
    ready BackendClient (tests pass one wrapping an in-memory Supabase).
    """
    settings = config or default_config
    app = Flask(__name__)
    CORS(app)

    app.config['EDUCASSOL_SETTINGS'] = settings

    # Auth must be registered before the blueprints
    init_auth(app)

    app.config['MAX_CONTENT_LENGTH'] = settings.max_file_size_bytes * 20
    app.extensions[EXTENSION_KEY] = backend or BackendClient(settings=settings)

    register_routes(app)

    @app.route('/api/health')
    def health():
        return jsonify({"status": "ok", "version": __version__})

    @app.route('/api/audit-log')
    def audit_entries():
        """Recent audit entries, newest first. School admins only."""
        access = current_access()
        if not access.is_school_admin():
            return denied(access.deny(REASON_SCHOOL_ADMIN, 'audit.view'))
        return jsonify({"logs": get_audit_logs(request.args.get('limit', 100, type=int))})

    return app


def shutdown_app(app):
    """Close and drop the app's backend client."""
    backend = app.extensions.pop(EXTENSION_KEY, None)
    if backend is not None:
        backend.close()


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    app = create_app()
    logger.info("Educa Sol API listening on %s:%s", HOST, PORT)
    try:
        app.run(host=HOST, port=PORT, debug=DEBUG, threaded=True)
    finally:
        shutdown_app(app)
