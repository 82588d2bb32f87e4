"""
uploader.py – Push the working set to Azure DevOps, one test case at a time.

For every entry not already uploaded: create the Test Case work item, then
link it into the target static suite.  Only when both calls succeed is the
entry marked `success`.  A failure is recorded on the entry and the loop
moves on; nothing aborts the pass.

The loop is sequential on purpose: progress callbacks fire in order and
ADO is sensitive to bursts of work-item creation.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ado_client import ADOClient
from config import ADOCredentials
from errors import ConfigurationError, Story2TestError
from models import TestCase, UploadOutcome, UploadReport, UploadStatus, UploadSummary

logger = logging.getLogger("story2test")

# (position, total, test case) – position is 1-based over the cases attempted
ProgressCallback = Callable[[int, int, TestCase], None]


class UploadOrchestrator:
    """Creates Test Case work items and files them into a suite."""

    def __init__(self, client: ADOClient, on_progress: Optional[ProgressCallback] = None) -> None:
        self._client = client
        self._on_progress = on_progress

    def _upload_one(self, tc: TestCase, plan_id: str, suite_id: str) -> UploadOutcome:
        created = None
        try:
            created = self._client.create_test_case(tc)
            self._client.add_test_case_to_suite(plan_id, suite_id, created.work_item_id)
        except Story2TestError as exc:
            if created is not None:
                # The work item exists in ADO but is not in the suite; it is not deleted.
                logger.warning(
                    "Test Case #%s was created for %s but left outside suite %s",
                    created.work_item_id, tc.id, suite_id,
                )
            tc.upload_status = UploadStatus.FAILED
            tc.upload_error = str(exc)
            logger.error("Upload failed for %s: %s", tc.id, exc)
            return UploadOutcome(
                test_case_id=tc.id,
                status=UploadStatus.FAILED,
                work_item_id=created.work_item_id if created else None,
                error=str(exc),
            )

        web_url = self._client.work_item_web_url(created.work_item_id)
        tc.upload_status = UploadStatus.SUCCESS
        tc.azure_devops_id = created.work_item_id
        tc.azure_devops_url = web_url
        tc.upload_error = None
        return UploadOutcome(
            test_case_id=tc.id,
            status=UploadStatus.SUCCESS,
            work_item_id=created.work_item_id,
            url=web_url,
        )

    def upload(self, test_cases: list[TestCase], plan_id: str, suite_id: str) -> UploadReport:
        """Upload every non-`success` test case; entries are updated in place."""
        plan_id = str(plan_id or "").strip()
        suite_id = str(suite_id or "").strip()
        if not plan_id or not suite_id:
            raise ConfigurationError("Please provide both a Test Plan ID and a Test Suite ID.")

        pending = [tc for tc in test_cases if tc.upload_status is not UploadStatus.SUCCESS]
        report = UploadReport(summary=UploadSummary(skipped_count=len(test_cases) - len(pending)))

        logger.info(
            "Uploading %d test cases to plan %s / suite %s (%d already uploaded)",
            len(pending), plan_id, suite_id, report.summary.skipped_count,
        )

        for position, tc in enumerate(pending, start=1):
            if self._on_progress:
                self._on_progress(position, len(pending), tc)
            report.outcomes.append(self._upload_one(tc, plan_id, suite_id))

        for outcome in report.outcomes:
            if outcome.status is UploadStatus.SUCCESS:
                report.summary.success_count += 1
            else:
                report.summary.failure_count += 1
                report.summary.error_messages.append(f"{outcome.test_case_id}: {outcome.error}")

        logger.info(
            "Upload finished: %d succeeded, %d failed",
            report.summary.success_count, report.summary.failure_count,
        )
        return report


def upload_test_cases(
    test_cases: list[TestCase],
    plan_id: str,
    suite_id: str,
    credentials: ADOCredentials,
    on_progress: Optional[ProgressCallback] = None,
) -> UploadReport:
    """Upload with a client built from explicit *credentials*."""
    if not credentials.is_complete:
        raise ConfigurationError(
            "Azure DevOps credentials are incomplete: organization URL, project and PAT "
            "are all required."
        )
    orchestrator = UploadOrchestrator(ADOClient(credentials), on_progress=on_progress)
    return orchestrator.upload(test_cases, plan_id, suite_id)
