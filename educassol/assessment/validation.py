"""
Helpers for turning pydantic validation failures into JSON-safe payloads.
"""
from pydantic import ValidationError


def format_errors(exc: ValidationError) -> list:
    """Flatten a ValidationError into [{"field": "a.b", "message": "..."}]."""
    errors = []
    for err in exc.errors(include_url=False):
        field = ".".join(str(part) for part in err.get("loc", ()))
        errors.append({"field": field, "message": err.get("msg", "Invalid value")})
    return errors
