"""
Educa Sol API Routes
====================

All API route blueprints for the Educa Sol backend.

Usage:
    from educassol.routes import register_routes
    register_routes(app)
"""
from .exam_routes import exam_bp
from .submission_routes import submission_bp
from .result_routes import result_bp
from .class_routes import class_bp
from .lesson_plan_routes import lesson_plan_bp
from .verify_routes import verify_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(exam_bp)
    app.register_blueprint(submission_bp)
    app.register_blueprint(result_bp)
    app.register_blueprint(class_bp)
    app.register_blueprint(lesson_plan_bp)
    app.register_blueprint(verify_bp)


__all__ = [
    'register_routes',
    'exam_bp',
    'submission_bp',
    'result_bp',
    'class_bp',
    'lesson_plan_bp',
    'verify_bp',
]
