"""
ado_client.py – All Azure DevOps REST interactions.

Three endpoints are used: read a work item, create a Test Case work item,
and add an existing Test Case to a static test suite.  Each non-2xx status
is mapped to a typed error whose message tells the user which setting is
most likely wrong.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import requests

from config import ADOCredentials
from errors import AuthenticationError, NotFoundError, UpstreamError
from models import TestCase, UploadResult, UserStory
from rich_text import html_to_text
from steps_xml import build_steps_xml

logger = logging.getLogger("story2test")

READ_API_VERSION = "api-version=6.0"
WRITE_API_VERSION = "api-version=7.1"

PRIORITY_RANK = {"High": 1, "Medium": 2, "Low": 3}
DEFAULT_PRIORITY_RANK = PRIORITY_RANK["Medium"]


# ── Work-item document helpers ──────────────────────────────────────────

def map_priority(priority: Any) -> int:
    """Map High/Medium/Low to the ADO numeric rank; anything else is Medium."""
    if isinstance(priority, str):
        return PRIORITY_RANK.get(priority, DEFAULT_PRIORITY_RANK)
    return DEFAULT_PRIORITY_RANK


def build_test_case_document(tc: TestCase) -> list[dict[str, Any]]:
    """Build the JSON-patch body that creates a Test Case work item."""
    document: list[dict[str, Any]] = [
        {"op": "add", "path": "/fields/System.Title", "value": f"{tc.id}: {tc.title}"},
        {
            "op": "add",
            "path": "/fields/Microsoft.VSTS.Common.Priority",
            "value": map_priority(tc.priority),
        },
    ]
    steps_xml = build_steps_xml(tc.description, tc.expected_result)
    if steps_xml:
        document.append(
            {"op": "add", "path": "/fields/Microsoft.VSTS.TCM.Steps", "value": steps_xml}
        )
    return document


def _error_message(resp: requests.Response) -> str:
    """Best-effort extraction of the `message` field ADO puts in error bodies."""
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or f"HTTP {resp.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason or f"HTTP {resp.status_code}"


def _json_body(resp: requests.Response, action: str) -> dict[str, Any]:
    """Decode a 2xx body; ADO answers a rejected PAT with 203 and an HTML sign-in page."""
    try:
        body = resp.json()
    except ValueError as exc:
        raise UpstreamError(
            f"Failed to {action}: unexpected non-JSON response (Status: {resp.status_code}). "
            "This usually means the PAT is invalid or expired.",
            status_code=resp.status_code,
        ) from exc
    if not isinstance(body, dict):
        raise UpstreamError(
            f"Failed to {action}: unexpected response shape (Status: {resp.status_code}).",
            status_code=resp.status_code,
        )
    return body


# ── Main client ─────────────────────────────────────────────────────────

class ADOClient:
    """Wraps every ADO interaction needed by Story2Test."""

    def __init__(
        self,
        credentials: ADOCredentials,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self._creds = credentials
        self._session = session or requests.Session()
        self._session.auth = ("", credentials.pat)
        self._timeout = timeout
        self._project_segment = quote(credentials.project, safe="")
        self._base = f"{credentials.organization_url}/{self._project_segment}"
        self._json_header = {"Content-Type": "application/json"}
        self._patch_header = {"Content-Type": "application/json-patch+json"}

    def work_item_web_url(self, work_item_id: int) -> str:
        """Browser URL of a work item (not the REST resource URL)."""
        return f"{self._base}/_workitems/edit/{work_item_id}"

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise UpstreamError(
                f"Could not reach Azure DevOps at {self._creds.organization_url}: {exc}"
            ) from exc

    # ── User Story ──────────────────────────────────────────────────────

    def get_user_story(self, story_id: int) -> UserStory:
        """Fetch a single User Story work item and flatten its HTML fields."""
        url = f"{self._base}/_apis/wit/workitems/{story_id}?{READ_API_VERSION}"
        resp = self._send("GET", url, headers=self._json_header)

        if resp.status_code == 401:
            raise AuthenticationError(
                "Authentication failed. Please check your PAT and permissions."
            )
        if resp.status_code == 404:
            raise NotFoundError(
                f'User Story with ID "{story_id}" not found in project '
                f'"{self._creds.project}". Ensure Organization URL, Project Name, '
                "and Story ID are correct."
            )
        if not resp.ok:
            raise UpstreamError(
                f"Failed to fetch user story: {_error_message(resp)}",
                status_code=resp.status_code,
            )

        data = _json_body(resp, "fetch user story")
        fields: dict[str, Any] = data.get("fields") or {}
        title = fields.get("System.Title")
        if not title:
            raise UpstreamError(f"User story {story_id} has no title.")

        story = UserStory(
            id=story_id,
            title=title,
            description=html_to_text(fields.get("System.Description")),
            acceptance_criteria=html_to_text(
                fields.get("Microsoft.VSTS.Common.AcceptanceCriteria")
            ),
            url=(data.get("_links") or {}).get("html", {}).get("href") or data.get("url", ""),
        )
        logger.info("Fetched User Story #%s  →  '%s'", story_id, story.title)
        return story

    # ── Create Test Case Work Items ─────────────────────────────────────

    def create_test_case(self, tc: TestCase) -> UploadResult:
        """Create a new Test Case work item from *tc*."""
        url = f"{self._base}/_apis/wit/workitems/$Test%20Case?{WRITE_API_VERSION}"
        resp = self._send(
            "POST", url, json=build_test_case_document(tc), headers=self._patch_header
        )

        if not resp.ok:
            status = resp.status_code
            message = (
                f'Failed to create test case work item "{tc.title}": '
                f"{_error_message(resp)} (Status: {status})."
            )
            if status == 404:
                raise NotFoundError(
                    f"{message} This typically means the Organization URL "
                    f"('{self._creds.organization_url}') or Project Name "
                    f"('{self._creds.project}') is incorrect, or the project cannot be "
                    "found. Please verify these in your settings and in Azure DevOps."
                )
            if status == 401:
                raise AuthenticationError(
                    f"{message} Authentication failed. Please check your Personal Access "
                    "Token (PAT) and ensure it is valid and has 'Work Items (read & write)' "
                    "permissions."
                )
            if status == 403:
                raise UpstreamError(
                    f"{message} Authorization failed. Your PAT may not have sufficient "
                    "permissions for this project. Ensure it has 'Work Items (read & write)' "
                    "scope.",
                    status_code=status,
                )
            raise UpstreamError(
                f"{message} Please check your network connection and Azure DevOps "
                "service status.",
                status_code=status,
            )

        body = _json_body(resp, f'create test case work item "{tc.title}"')
        try:
            new_id = int(body["id"])
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError(
                f'Failed to create test case work item "{tc.title}": response has no '
                f"work item id (Status: {resp.status_code}).",
                status_code=resp.status_code,
            ) from exc
        logger.info("Created Test Case #%s  →  '%s'", new_id, tc.title)
        return UploadResult(work_item_id=new_id, url=body.get("url", ""))

    # ── Test Plan / Suite linkage ───────────────────────────────────────

    def add_test_case_to_suite(self, plan_id: str, suite_id: str, work_item_id: int) -> None:
        """Add an existing Test Case to a STATIC test suite.

        Query-based and requirement-based suites reject this call; ADO
        answers 404 in that case.
        """
        url = (
            f"{self._base}/_apis/test/Plans/{plan_id}/suites/{suite_id}"
            f"/testcases/{work_item_id}?{WRITE_API_VERSION}"
        )
        resp = self._send("POST", url)
        if resp.ok:
            logger.debug("Added TC #%s to suite %s (plan %s)", work_item_id, suite_id, plan_id)
            return

        status = resp.status_code
        ado_message = _error_message(resp)
        message = (
            f"Test case {work_item_id} created, but failed to add to Test Suite "
            f"{suite_id} in Plan {plan_id}. (Status: {status})."
        )
        if status == 404:
            raise NotFoundError(
                f"{message} The Test Plan ID ('{plan_id}') or Test Suite ID "
                f"('{suite_id}') may be wrong for project '{self._creds.project}', or the "
                "suite does not belong to that plan. Ensure the suite is a STATIC test "
                "suite: test cases cannot be added to query-based or requirement-based "
                "suites through this API. Also verify your PAT has 'Test Management "
                f"(read & write)' permissions. ADO Message: '{ado_message}'"
            )
        if status == 401:
            raise AuthenticationError(
                f"{message} This could be a permission issue with your PAT. Ensure it has "
                f"'Test Management (read & write)' scope. ADO Message: '{ado_message}'"
            )
        if status == 403:
            raise UpstreamError(
                f"{message} This could be a permission issue with your PAT. Ensure it has "
                f"'Test Management (read & write)' scope. ADO Message: '{ado_message}'",
                status_code=status,
            )
        if status == 400:
            raise UpstreamError(
                f"{message} This might indicate an invalid request format or invalid "
                f"plan / suite ids. ADO Message: '{ado_message}'",
                status_code=status,
            )
        raise UpstreamError(f"{message} ADO Message: '{ado_message}'", status_code=status)
