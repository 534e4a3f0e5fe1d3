"""
Exam records and the payloads used to create or edit them.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .access_control import ExamAccessContext, SubmissionAccessContext
from .rubric import Rubric

ExamStatus = Literal['draft', 'published', 'archived']


class Exam(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: Optional[str] = None
    status: ExamStatus = 'draft'
    rubric: Rubric
    created_at: Optional[datetime] = None
    educator_id: str
    school_id: Optional[str] = None
    class_id: Optional[str] = None

    def access_context(self) -> ExamAccessContext:
        return ExamAccessContext(exam_id=self.id, educator_id=self.educator_id, school_id=self.school_id)

    def submission_context(self, submission_id: str = '') -> SubmissionAccessContext:
        """Context for checks on a submission of this exam (denormalized owner fields)."""
        return SubmissionAccessContext(
            submission_id=submission_id,
            exam_id=self.id,
            exam_educator_id=self.educator_id,
            exam_school_id=self.school_id,
        )


class ExamCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    description: Optional[str] = None
    rubric: Rubric
    class_id: Optional[str] = None


class ExamUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    rubric: Optional[Rubric] = None
    class_id: Optional[str] = None
    status: Optional[ExamStatus] = None
