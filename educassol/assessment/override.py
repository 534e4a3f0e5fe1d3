"""
Score reconciliation between AI grading and teacher overrides.

All functions here are pure: they never mutate the GradingResult they are
given. ``apply_override`` and ``clear_override`` return updated copies that
the caller persists as a whole.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .grading_result import GradingResult, QuestionOverride


class OverrideInput(BaseModel):
    """Bounds-checked input for a new override."""
    question_number: str = Field(min_length=1)
    original_score: float = Field(ge=0)
    override_score: float = Field(ge=0)
    max_points: float = Field(gt=0)
    override_reason: Optional[str] = None

    @model_validator(mode="after")
    def _within_max(self):
        if self.override_score > self.max_points:
            raise ValueError("Override score cannot exceed max points")
        if self.original_score > self.max_points:
            raise ValueError("Original score cannot exceed max points")
        return self


def create_override(question_number, original_score, override_score, max_points,
                    reason=None, now=None) -> QuestionOverride:
    """Validate bounds and build a QuestionOverride. Raises pydantic.ValidationError."""
    data = OverrideInput(
        question_number=question_number,
        original_score=original_score,
        override_score=override_score,
        max_points=max_points,
        override_reason=reason,
    )
    return QuestionOverride(
        question_number=data.question_number,
        original_score=data.original_score,
        override_score=data.override_score,
        override_reason=data.override_reason,
        overridden_at=now or datetime.now(timezone.utc),
    )


def _override_map(result: GradingResult) -> dict:
    # Later entries replace earlier ones for the same question.
    return {o.question_number: o for o in result.overrides}


def get_override(result: GradingResult, question_number: str) -> Optional[QuestionOverride]:
    return _override_map(result).get(question_number)


def has_override(result: GradingResult, question_number: str) -> bool:
    return question_number in _override_map(result)


def count_overrides(result: GradingResult) -> int:
    return len(_override_map(result))


def get_effective_score(result: GradingResult, question_number: str) -> Optional[float]:
    """Override score if present, AI score otherwise. None for unknown questions."""
    question = result.question(question_number)
    if question is None:
        return None
    override = get_override(result, question_number)
    return override.override_score if override else question.points_awarded


def calculate_final_score(result: GradingResult) -> float:
    """Sum of per-question scores with overrides substituted for AI scores."""
    overrides = _override_map(result)
    total = 0
    for question in result.questions:
        override = overrides.get(question.number)
        total += override.override_score if override else question.points_awarded
    return total


def apply_override(result: GradingResult, question_number: str, score: float,
                   reason=None, now=None) -> GradingResult:
    """
    Set a teacher score for one question.

    Setting the score back to the AI's own value removes the override instead
    of storing a no-op one. Any previous override for the question is replaced.

    Raises:
        KeyError: question_number is not in the result.
        pydantic.ValidationError: score outside 0..max_points.
    """
    question = result.question(question_number)
    if question is None:
        raise KeyError(question_number)

    overrides = [o for o in result.overrides if o.question_number != question_number]
    if score != question.points_awarded:
        overrides.append(create_override(
            question_number,
            original_score=question.points_awarded,
            override_score=score,
            max_points=question.max_points,
            reason=reason,
            now=now,
        ))
    return result.model_copy(update={"overrides": overrides})


def clear_override(result: GradingResult, question_number: str) -> GradingResult:
    overrides = [o for o in result.overrides if o.question_number != question_number]
    return result.model_copy(update={"overrides": overrides})


def sync_total_score(result: GradingResult) -> GradingResult:
    """Copy with total_score set to the reconciled final score."""
    return result.model_copy(update={"total_score": calculate_final_score(result)})
