"""
models.py – Plain data-classes shared across every module.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class TestCaseOrigin(str, Enum):
    """Who authored a test case.  Manual entries survive every merge."""

    __test__ = False

    MANUAL = "manual"
    GENERATED = "generated"


class UploadStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


PRIORITIES = ("High", "Medium", "Low")


@dataclass
class UserStory:
    """An Azure DevOps User Story with its rich-text fields flattened."""

    id: int
    title: str
    acceptance_criteria: str
    url: str
    description: str = ""


@dataclass
class TestCase:
    """A test case in the working set, generated or written by hand."""

    __test__ = False

    id: str
    title: str
    priority: str = "Medium"              # High | Medium | Low
    description: str = ""                 # "1. step\n2. step" – prerequisites first
    expected_result: str = ""
    origin: TestCaseOrigin = TestCaseOrigin.GENERATED
    upload_status: UploadStatus = UploadStatus.PENDING
    azure_devops_id: Optional[int] = None
    azure_devops_url: Optional[str] = None
    upload_error: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.origin is TestCaseOrigin.MANUAL

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["origin"] = self.origin.value
        data["upload_status"] = self.upload_status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestCase:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            priority=data.get("priority", "Medium"),
            description=data.get("description", ""),
            expected_result=data.get("expected_result", ""),
            origin=TestCaseOrigin(data.get("origin", TestCaseOrigin.GENERATED.value)),
            upload_status=UploadStatus(
                data.get("upload_status", UploadStatus.PENDING.value)
            ),
            azure_devops_id=data.get("azure_devops_id"),
            azure_devops_url=data.get("azure_devops_url"),
            upload_error=data.get("upload_error"),
        )


@dataclass
class SupportingDocument:
    """Plain text of a business document handed to the model as context."""

    name: str
    text: str


@dataclass
class GenerationInput:
    """Everything the prompt composer needs for one generation call."""

    story_title: str
    acceptance_criteria: str
    data_dictionary: Optional[str] = None
    documents: list[SupportingDocument] = field(default_factory=list)


@dataclass
class UploadResult:
    """What Azure DevOps returns for a freshly created Test Case."""

    work_item_id: int
    url: str


@dataclass
class UploadOutcome:
    """Per-test-case result of one upload attempt."""

    test_case_id: str
    status: UploadStatus
    work_item_id: Optional[int] = None
    url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class UploadSummary:
    """Aggregate counts collected after the upload loop finishes."""

    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    error_messages: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success_count + self.failure_count


@dataclass
class UploadReport:
    outcomes: list[UploadOutcome] = field(default_factory=list)
    summary: UploadSummary = field(default_factory=UploadSummary)
