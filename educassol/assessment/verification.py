"""
Public grade verification by QR-code token.

Only initials, exam title, graded date and score are ever exposed.
"""
from datetime import datetime

from pydantic import TypeAdapter

from .storage_path import is_valid_uuid

MONTHS_PT = (
    'janeiro', 'fevereiro', 'março', 'abril', 'maio', 'junho',
    'julho', 'agosto', 'setembro', 'outubro', 'novembro', 'dezembro',
)

_DATETIME = TypeAdapter(datetime)


def is_valid_verification_token(token) -> bool:
    return is_valid_uuid(token)


def get_initials(name) -> str:
    """First and last initials; first two letters for a single name."""
    parts = (name or '').split()
    if not parts:
        return '??'
    if len(parts) == 1:
        return parts[0][:2].upper()
    return (parts[0][0] + parts[-1][0]).upper()


def format_graded_date(value) -> str:
    """'05 de março de 2026' style date, or '' when missing."""
    if not value:
        return ''
    if isinstance(value, str):
        value = _DATETIME.validate_python(value)
    return f"{value.day:02d} de {MONTHS_PT[value.month - 1]} de {value.year}"


def build_verification_payload(row: dict) -> dict:
    """Reduce a results row (with nested submission.exam) to the public fields."""
    ai_output = row.get('ai_output') or {}
    student_name = (ai_output.get('student_metadata') or {}).get('name') or 'Aluno'

    submission = row.get('submission') or {}
    if isinstance(submission, list):
        submission = submission[0] if submission else {}
    exam = submission.get('exam') or {}
    if isinstance(exam, list):
        exam = exam[0] if exam else {}

    return {
        "student_initials": get_initials(student_name),
        "exam_title": exam.get('title') or 'Avaliação',
        "graded_date": format_graded_date(row.get('graded_at')),
        "total_score": row.get('total_score') or 0,
    }
