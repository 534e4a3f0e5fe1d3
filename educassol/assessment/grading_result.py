"""
Grading result models.

The analyze-exam function writes a GradingResult as JSON into
``results.ai_output``. Teachers then adjust per-question scores through
overrides, and the whole object is written back.

Overrides are keyed by question number. A stored list with two entries for
the same number collapses to the later one when parsed.
"""
import json
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .validation import format_errors


class HandwritingQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    ILLEGIBLE = "illegible"


class StudentMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    student_id: str = ""
    handwriting_quality: HandwritingQuality


class QuestionResult(BaseModel):
    """AI output for a single question."""
    model_config = ConfigDict(extra="ignore")

    number: str
    topic: str
    student_response_transcription: str = ""
    is_correct: bool
    points_awarded: float
    max_points: float
    reasoning: str = ""
    feedback_for_student: str = ""


class QuestionOverride(BaseModel):
    """A teacher's manual correction of one question's AI score."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    question_number: str = Field(alias="questionNumber", min_length=1)
    original_score: float = Field(alias="originalScore", ge=0)
    override_score: float = Field(alias="overrideScore", ge=0)
    override_reason: Optional[str] = Field(default=None, alias="overrideReason")
    overridden_at: datetime = Field(
        alias="overriddenAt",
        default_factory=lambda: datetime.now(timezone.utc),
    )


class GradingResult(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    student_metadata: StudentMetadata
    questions: List[QuestionResult] = Field(min_length=1)
    summary_comment: str = ""
    total_score: float
    confidence_score: Optional[float] = Field(default=None, alias="confidenceScore", ge=0, le=100)
    overrides: List[QuestionOverride] = Field(default_factory=list)

    @field_validator("overrides", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value

    @field_validator("overrides")
    @classmethod
    def _last_override_wins(cls, value):
        by_number = {}
        for override in value:
            by_number.pop(override.question_number, None)
            by_number[override.question_number] = override
        return list(by_number.values())

    def question(self, number: str) -> Optional[QuestionResult]:
        for q in self.questions:
            if q.number == number:
                return q
        return None

    @property
    def max_score(self) -> float:
        return sum(q.max_points for q in self.questions)


def parse_grading_result(data) -> dict:
    """
    Validate a raw ai_output payload.

    Returns:
        {"success": True, "data": GradingResult} or {"success": False, "errors": [...]}
    """
    try:
        return {"success": True, "data": GradingResult.model_validate(data)}
    except ValidationError as e:
        return {"success": False, "errors": format_errors(e)}


def to_ai_output(result: GradingResult) -> dict:
    """JSON-ready dict in the shape stored in results.ai_output."""
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def serialize_grading_result(result: GradingResult) -> str:
    return json.dumps(to_ai_output(result), ensure_ascii=False)


def deserialize_grading_result(raw: str) -> dict:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {"success": False, "errors": [{"field": "", "message": "Invalid JSON string"}]}
    return parse_grading_result(data)
