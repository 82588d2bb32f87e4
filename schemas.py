"""
schemas.py – Validator objects for every payload that crosses the model
boundary.

Each `validate_*` helper returns the parsed value or raises with *all*
violations collected, never just the first one.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from errors import Violation


class DocumentSchema(BaseModel):
    name: StrictStr
    text: StrictStr


class GenerationInputSchema(BaseModel):
    """Local input to one generation call."""

    story_title: StrictStr = Field(min_length=1)
    acceptance_criteria: StrictStr
    data_dictionary: Optional[StrictStr] = None
    documents: list[DocumentSchema] = Field(default_factory=list)


class TestCaseSchema(BaseModel):
    """One element of the JSON array the model must return."""

    __test__ = False

    model_config = ConfigDict(populate_by_name=True)

    id: StrictStr
    title: StrictStr
    priority: Literal["High", "Medium", "Low"]
    description: StrictStr
    expected_result: StrictStr = Field(alias="expectedResult")


class UploadSummaryTextSchema(BaseModel):
    """The `{summary, progress}` object returned by the summary prompt."""

    summary: StrictStr
    progress: StrictStr


TEST_CASE_ARRAY = TypeAdapter(list[TestCaseSchema])


def violations_from(exc: PydanticValidationError) -> list[Violation]:
    """Flatten pydantic's error list into `Violation` objects."""
    return [
        Violation(
            path=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
        )
        for err in exc.errors()
    ]


def validate_generation_input(data: dict[str, Any]) -> GenerationInputSchema:
    return GenerationInputSchema.model_validate(data)


def validate_test_case_array(data: Any) -> list[TestCaseSchema]:
    return TEST_CASE_ARRAY.validate_python(data)


def validate_upload_summary(data: Any) -> UploadSummaryTextSchema:
    return UploadSummaryTextSchema.model_validate(data)
