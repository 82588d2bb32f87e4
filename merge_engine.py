"""
merge_engine.py – Reconcile a freshly generated batch with the working set.

Two modes exist once generated test cases are already present:

  • append  – update by id: batch entries replace existing ones with the
              same id, existing ids missing from the batch are kept, new
              ids are added at the end.
  • replace – every previous generated entry is discarded in favour of
              the batch, whatever its upload state.

Manual entries are never touched and always come first.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Optional

from errors import ValidationError
from models import TestCase, TestCaseOrigin, UploadStatus

logger = logging.getLogger("story2test")


class MergeMode(str, Enum):
    APPEND = "append"
    REPLACE = "replace"


class MergeModeRequiredError(ValidationError):
    """Generated cases already exist and the caller did not pick a mode."""


def _partition(current: list[TestCase]) -> tuple[list[TestCase], list[TestCase]]:
    manual = [tc for tc in current if tc.origin is TestCaseOrigin.MANUAL]
    generated = [tc for tc in current if tc.origin is not TestCaseOrigin.MANUAL]
    return manual, generated


def _as_fresh(tc: TestCase) -> TestCase:
    """Copy of a batch entry ready to enter the working set."""
    return replace(
        tc,
        origin=TestCaseOrigin.GENERATED,
        upload_status=UploadStatus.PENDING,
        azure_devops_id=None,
        azure_devops_url=None,
        upload_error=None,
    )


def has_generated(current: list[TestCase]) -> bool:
    return any(tc.origin is not TestCaseOrigin.MANUAL for tc in current)


def resolve_mode(current: list[TestCase], requested: Optional[MergeMode]) -> MergeMode:
    """Pick the merge mode, insisting on an explicit choice when it matters.

    With nothing generated yet there is nothing to preserve, so replace is
    applied automatically.
    """
    if not has_generated(current):
        return MergeMode.REPLACE
    if requested is None:
        raise MergeModeRequiredError(
            "Generated test cases already exist; choose 'append' to update by id "
            "or 'replace' to discard them (manual test cases are always kept)"
        )
    return MergeMode(requested)


def merge(
    current: list[TestCase],
    batch: list[TestCase],
    mode: MergeMode,
) -> list[TestCase]:
    """Return the new working set; neither input list is modified."""
    manual, existing = _partition(current)
    fresh = [_as_fresh(tc) for tc in batch]

    if MergeMode(mode) is MergeMode.REPLACE:
        logger.info(
            "Replace merge: %d manual kept, %d generated dropped, %d new",
            len(manual), len(existing), len(fresh),
        )
        return list(manual) + fresh

    by_id: dict[str, TestCase] = {tc.id: tc for tc in existing}
    for tc in fresh:
        by_id[tc.id] = tc

    updated = sum(1 for tc in existing if by_id[tc.id] is not tc)
    logger.info(
        "Append merge: %d manual kept, %d updated, %d added",
        len(manual), updated, len(by_id) - len(existing),
    )
    return list(manual) + list(by_id.values())
