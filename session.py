"""
session.py – The working set of test cases for one story, saved as JSON
between CLI runs so the user can edit it by hand before uploading.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from models import TestCase, TestCaseOrigin, UploadStatus, UserStory

logger = logging.getLogger("story2test")

DEFAULT_SESSION_FILE = ".story2test_session.json"


@dataclass
class Session:
    story: Optional[UserStory] = None
    test_cases: list[TestCase] = field(default_factory=list)
    manual_counter: int = 1

    def start_story(self, story: UserStory) -> None:
        """Switch to *story*; a different story starts a fresh working set."""
        if self.story is None or self.story.id != story.id:
            self.test_cases = []
            self.manual_counter = 1
        self.story = story

    def add_manual(self, title: Optional[str] = None) -> TestCase:
        number = self.manual_counter
        tc = TestCase(
            id=f"MANUAL-{number}",
            title=title or f"Manual Test Case {number}",
            priority="Medium",
            origin=TestCaseOrigin.MANUAL,
            upload_status=UploadStatus.PENDING,
        )
        self.test_cases.append(tc)
        self.manual_counter += 1
        logger.info("Added manual test case %s", tc.id)
        return tc

    def get(self, test_case_id: str) -> Optional[TestCase]:
        return next((tc for tc in self.test_cases if tc.id == test_case_id), None)

    def remove(self, test_case_id: str) -> bool:
        before = len(self.test_cases)
        self.test_cases = [tc for tc in self.test_cases if tc.id != test_case_id]
        return len(self.test_cases) != before

    # ── Persistence ─────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "story": asdict(self.story) if self.story else None,
            "manual_counter": self.manual_counter,
            "test_cases": [tc.to_dict() for tc in self.test_cases],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        story = data.get("story")
        return cls(
            story=UserStory(**story) if story else None,
            test_cases=[TestCase.from_dict(tc) for tc in data.get("test_cases", [])],
            manual_counter=int(data.get("manual_counter", 1)),
        )

    def save(self, path: str | Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.debug("Session saved to %s", path)

    @classmethod
    def load(cls, path: str | Path) -> Session:
        target = Path(path)
        if not target.exists():
            return cls()
        return cls.from_dict(json.loads(target.read_text(encoding="utf-8")))
