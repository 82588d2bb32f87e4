import json
from unittest.mock import Mock

import pytest
import requests

from config import ADOCredentials
from llm_client import LLMClient
from models import TestCase, TestCaseOrigin, UploadStatus


def make_response(status=200, body=None, reason=None, raw=None):
    """Build a real requests.Response so .ok / .json() behave normally."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason if reason is not None else ("OK" if status < 400 else "Error")
    if raw is not None:
        resp._content = raw.encode("utf-8")
        resp.headers["Content-Type"] = "text/html"
    else:
        resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
        resp.headers["Content-Type"] = "application/json"
    return resp


@pytest.fixture
def credentials():
    return ADOCredentials(
        organization_url="https://dev.azure.com/contoso/",
        project="Web Shop",
        pat="secret-pat",
    )


@pytest.fixture
def mock_session():
    return Mock(spec=requests.Session)


@pytest.fixture
def fake_llm():
    llm = Mock(spec=LLMClient)
    llm.ensure_configured.return_value = None
    return llm


@pytest.fixture
def manual_case():
    return TestCase(
        id="MANUAL-1",
        title="Manual Test Case 1",
        priority="Medium",
        description="1. Do the manual thing.",
        expected_result="It works.",
        origin=TestCaseOrigin.MANUAL,
    )


def generated(tc_id, title=None, **kwargs):
    return TestCase(
        id=tc_id,
        title=title or f"Title of {tc_id}",
        priority=kwargs.pop("priority", "High"),
        description=kwargs.pop("description", "1. Open page.\n2. Click button."),
        expected_result=kwargs.pop("expected_result", "Page loads."),
        origin=TestCaseOrigin.GENERATED,
        upload_status=kwargs.pop("upload_status", UploadStatus.PENDING),
        **kwargs,
    )
