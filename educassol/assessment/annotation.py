"""
Teacher annotations on a submission (highlights, comments, corrections).
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .validation import format_errors


class AnnotationType(str, Enum):
    HIGHLIGHT = "highlight"
    COMMENT = "comment"
    CORRECTION = "correction"


class TextLocation(BaseModel):
    """Character range on a page of a PDF/text submission."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    start_offset: int = Field(alias="startOffset", ge=0)
    end_offset: int = Field(alias="endOffset", ge=0)
    page_number: int = Field(alias="pageNumber", ge=1)

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_offset < self.start_offset:
            raise ValueError("End offset must be greater than or equal to start offset")
        return self


class ImageLocation(BaseModel):
    """Box on a page of an image submission."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    x: float = Field(ge=0)
    y: float = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    page_number: int = Field(alias="pageNumber", ge=1)


class Annotation(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    submission_id: str = Field(alias="submissionId", min_length=1)
    question_number: str = Field(alias="questionNumber", min_length=1)
    type: AnnotationType
    content: str = Field(min_length=1)
    location: Union[TextLocation, ImageLocation]
    created_at: datetime = Field(
        alias="createdAt",
        default_factory=lambda: datetime.now(timezone.utc),
    )


def validate_annotation(data) -> dict:
    try:
        return {"success": True, "data": Annotation.model_validate(data)}
    except ValidationError as e:
        return {"success": False, "errors": format_errors(e)}


def is_text_location(location) -> bool:
    return isinstance(location, TextLocation)


def is_image_location(location) -> bool:
    return isinstance(location, ImageLocation)
