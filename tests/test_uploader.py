from unittest.mock import Mock, patch

import pytest

from ado_client import ADOClient
from config import ADOCredentials
from conftest import generated, make_response
from errors import ConfigurationError, NotFoundError
from models import UploadResult, UploadStatus
from uploader import UploadOrchestrator, upload_test_cases

STATIC_HINT = "Ensure the suite is a STATIC test suite"


@pytest.fixture
def ado():
    client = Mock(spec=ADOClient)
    ids = iter([501, 502, 503, 504])

    def create(tc):
        return UploadResult(work_item_id=next(ids), url="https://api/wi")

    client.create_test_case.side_effect = create
    client.work_item_web_url.side_effect = lambda wid: f"https://web/edit/{wid}"
    return client


@pytest.fixture
def cases():
    return [generated("TC-POS-1"), generated("TC-POS-2"), generated("TC-POS-3")]


class TestPartialFailure:

    def test_one_link_failure_does_not_stop_the_pass(self, ado, cases):
        def link(plan_id, suite_id, work_item_id):
            if work_item_id == 502:
                raise NotFoundError(f"Test case 502 created, but failed. {STATIC_HINT}.")

        ado.add_test_case_to_suite.side_effect = link

        report = UploadOrchestrator(ado).upload(cases, "7", "8")

        assert [tc.upload_status for tc in cases] == [
            UploadStatus.SUCCESS, UploadStatus.FAILED, UploadStatus.SUCCESS,
        ]
        assert ado.create_test_case.call_count == 3
        assert STATIC_HINT in cases[1].upload_error
        assert cases[1].azure_devops_id is None
        assert cases[0].azure_devops_url == "https://web/edit/501"
        assert cases[2].azure_devops_id == 503

        assert report.summary.success_count == 2
        assert report.summary.failure_count == 1
        assert report.summary.error_messages[0].startswith("TC-POS-2: ")
        assert report.outcomes[1].work_item_id == 502

    def test_create_failure_skips_linking(self, ado, cases):
        ado.create_test_case.side_effect = NotFoundError("project not found")

        report = UploadOrchestrator(ado).upload(cases[:1], "7", "8")

        ado.add_test_case_to_suite.assert_not_called()
        assert cases[0].upload_status is UploadStatus.FAILED
        assert report.outcomes[0].work_item_id is None


class TestRetryPass:

    def test_successful_entries_are_not_uploaded_again(self, ado, cases):
        cases[0].upload_status = UploadStatus.SUCCESS
        cases[0].azure_devops_id = 100
        cases[1].upload_status = UploadStatus.FAILED
        cases[1].upload_error = "old failure"

        report = UploadOrchestrator(ado).upload(cases, "7", "8")

        uploaded = [c.args[0].id for c in ado.create_test_case.call_args_list]
        assert uploaded == ["TC-POS-2", "TC-POS-3"]
        assert cases[0].azure_devops_id == 100
        assert cases[1].upload_status is UploadStatus.SUCCESS
        assert cases[1].upload_error is None
        assert report.summary.skipped_count == 1
        assert report.summary.attempted == 2


class TestPreconditions:

    @pytest.mark.parametrize("plan_id,suite_id", [("", "8"), ("7", " "), (None, None)])
    def test_plan_and_suite_are_required(self, ado, cases, plan_id, suite_id):
        with pytest.raises(ConfigurationError):
            UploadOrchestrator(ado).upload(cases, plan_id, suite_id)
        ado.create_test_case.assert_not_called()

    def test_incomplete_credentials(self, cases):
        creds = ADOCredentials(organization_url="https://dev.azure.com/contoso", project="", pat="x")
        with pytest.raises(ConfigurationError):
            upload_test_cases(cases, "7", "8", creds)

    def test_wrapper_builds_client_from_credentials(self, credentials, cases):
        with patch("uploader.ADOClient") as client_cls:
            client_cls.return_value.create_test_case.return_value = UploadResult(1, "u")
            client_cls.return_value.work_item_web_url.return_value = "w"
            report = upload_test_cases(cases, "7", "8", credentials)

        client_cls.assert_called_once_with(credentials)
        assert report.summary.success_count == 3


def test_progress_is_reported_in_order(ado, cases):
    progress = Mock()

    UploadOrchestrator(ado, on_progress=progress).upload(cases, "7", "8")

    assert [(c.args[0], c.args[1], c.args[2].id) for c in progress.call_args_list] == [
        (1, 3, "TC-POS-1"), (2, 3, "TC-POS-2"), (3, 3, "TC-POS-3"),
    ]


def test_non_json_create_response_fails_only_that_case(credentials, mock_session, cases):
    mock_session.request.side_effect = [
        make_response(203, raw="<html>Sign in</html>"),
        make_response(200, {"id": 9, "url": "https://api/9"}),
        make_response(200, []),
        make_response(200, {"id": 10, "url": "https://api/10"}),
        make_response(200, []),
    ]
    client = ADOClient(credentials, session=mock_session)

    report = UploadOrchestrator(client).upload(cases, "7", "8")

    assert [tc.upload_status for tc in cases] == [
        UploadStatus.FAILED, UploadStatus.SUCCESS, UploadStatus.SUCCESS,
    ]
    assert "non-JSON" in cases[0].upload_error
    assert cases[1].azure_devops_id == 9
    assert report.summary.failure_count == 1
    assert report.summary.success_count == 2
