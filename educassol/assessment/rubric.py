"""
Rubric models for exam grading.

A rubric is stored as JSON in ``exams.rubric``. It is validated on every read
and write so a malformed rubric never reaches the grading function.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .validation import format_errors


class RubricQuestion(BaseModel):
    """One gradable question with its point allocation."""
    model_config = ConfigDict(extra="ignore")

    number: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    max_points: int = Field(gt=0)
    expected_answer: Optional[str] = None
    partial_credit_criteria: Optional[List[str]] = None
    keywords: Optional[List[str]] = None


class Rubric(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    total_points: int = Field(gt=0)
    questions: List[RubricQuestion] = Field(min_length=1)
    grading_instructions: Optional[str] = None

    @model_validator(mode="after")
    def _check_total(self):
        expected = sum(q.max_points for q in self.questions)
        if self.total_points != expected:
            raise ValueError(
                f"total_points ({self.total_points}) must equal the sum of "
                f"question points ({expected})"
            )
        return self


def build_rubric(title, questions, grading_instructions=None) -> Rubric:
    """Build a rubric from question dicts, computing total_points."""
    parsed = [RubricQuestion.model_validate(q) for q in questions]
    return Rubric(
        title=title,
        total_points=sum(q.max_points for q in parsed),
        questions=parsed,
        grading_instructions=grading_instructions,
    )


def validate_rubric(data) -> dict:
    """
    Validate a rubric payload.

    Returns:
        {"success": True, "data": Rubric} or {"success": False, "errors": [...]}
    """
    try:
        return {"success": True, "data": Rubric.model_validate(data)}
    except ValidationError as e:
        return {"success": False, "errors": format_errors(e)}
