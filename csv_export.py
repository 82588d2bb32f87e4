"""
csv_export.py – Export the working set in the Azure DevOps test-case CSV
import layout.

One row per step.  Work item type and title appear only on a test case's
first row, its expected result only on the last row.
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable

from models import TestCase
from steps_xml import split_steps

logger = logging.getLogger("story2test")

CSV_HEADER = ["Work Item Type", "Title", "Step Action", "Step Expected Result"]
WORK_ITEM_TYPE = "Test Case"


def default_filename(story_id: int | str | None) -> str:
    return f"test_cases_for_story_{story_id or 'NA'}.csv"


def csv_rows(test_cases: Iterable[TestCase]) -> list[list[str]]:
    rows: list[list[str]] = []
    for tc in test_cases:
        steps = split_steps(tc.description)
        if not steps:
            rows.append([WORK_ITEM_TYPE, tc.title, "", tc.expected_result])
            continue
        last = len(steps) - 1
        for index, step in enumerate(steps):
            rows.append([
                WORK_ITEM_TYPE if index == 0 else "",
                tc.title if index == 0 else "",
                step,
                tc.expected_result if index == last else "",
            ])
    return rows


def render_csv(test_cases: Iterable[TestCase]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(csv_rows(test_cases))
    return buffer.getvalue()


def write_csv(path: str | Path, test_cases: list[TestCase]) -> Path:
    target = Path(path)
    target.write_text(render_csv(test_cases), encoding="utf-8")
    logger.info("Exported %d test cases to %s", len(test_cases), target)
    return target
