import pytest
import requests

from ado_client import ADOClient, build_test_case_document, map_priority
from conftest import generated, make_response
from errors import AuthenticationError, NotFoundError, UpstreamError
from models import UploadResult

STORY_BODY = {
    "id": 42,
    "fields": {
        "System.Title": "Checkout with saved card",
        "System.Description": "<div>As a <b>shopper</b></div>",
        "Microsoft.VSTS.Common.AcceptanceCriteria": "<ul><li>Pay</li><li>Get receipt</li></ul>",
    },
    "_links": {"html": {"href": "https://dev.azure.com/contoso/Web%20Shop/_workitems/edit/42"}},
    "url": "https://dev.azure.com/contoso/_apis/wit/workItems/42",
}


@pytest.fixture
def client(credentials, mock_session):
    return ADOClient(credentials, session=mock_session)


def _called_url(mock_session):
    args = mock_session.request.call_args.args
    return args[0], args[1]


class TestPriorityMapping:

    @pytest.mark.parametrize("value,rank", [("High", 1), ("Medium", 2), ("Low", 3), ("Critical", 2), (None, 2), ("", 2)])
    def test_mapping_is_total(self, value, rank):
        assert map_priority(value) == rank


class TestWorkItemDocument:

    def test_title_priority_and_steps(self):
        tc = generated("TC-POS-1", "Pay with card", priority="Low")
        document = build_test_case_document(tc)
        by_path = {op["path"]: op["value"] for op in document}

        assert all(op["op"] == "add" for op in document)
        assert by_path["/fields/System.Title"] == "TC-POS-1: Pay with card"
        assert by_path["/fields/Microsoft.VSTS.Common.Priority"] == 3
        assert by_path["/fields/Microsoft.VSTS.TCM.Steps"].startswith('<steps id="0" last="2">')

    def test_steps_field_omitted_when_empty(self):
        tc = generated("MANUAL-1", "Blank", description="", expected_result="")
        paths = [op["path"] for op in build_test_case_document(tc)]
        assert "/fields/Microsoft.VSTS.TCM.Steps" not in paths


class TestGetUserStory:

    def test_fetches_and_normalizes(self, client, mock_session):
        mock_session.request.return_value = make_response(200, STORY_BODY)

        story = client.get_user_story(42)

        method, url = _called_url(mock_session)
        assert method == "GET"
        assert url == "https://dev.azure.com/contoso/Web%20Shop/_apis/wit/workitems/42?api-version=6.0"
        assert mock_session.auth == ("", "secret-pat")
        assert story.title == "Checkout with saved card"
        assert story.description == "As a shopper"
        assert story.acceptance_criteria == "• Pay\n• Get receipt"
        assert story.url.endswith("/_workitems/edit/42")

    def test_missing_optional_fields(self, client, mock_session):
        mock_session.request.return_value = make_response(
            200, {"fields": {"System.Title": "Bare"}, "url": "https://x/42"}
        )
        story = client.get_user_story(42)

        assert story.description == ""
        assert story.acceptance_criteria == ""
        assert story.url == "https://x/42"

    def test_401(self, client, mock_session):
        mock_session.request.return_value = make_response(401)
        with pytest.raises(AuthenticationError, match="Authentication failed"):
            client.get_user_story(42)

    def test_404_names_story_and_project(self, client, mock_session):
        mock_session.request.return_value = make_response(404, {"message": "nope"})
        with pytest.raises(NotFoundError) as exc_info:
            client.get_user_story(42)
        assert '"42"' in str(exc_info.value)
        assert "Web Shop" in str(exc_info.value)

    def test_other_status_extracts_message(self, client, mock_session):
        mock_session.request.return_value = make_response(500, {"message": "TF400898: internal"})
        with pytest.raises(UpstreamError, match="TF400898") as exc_info:
            client.get_user_story(42)
        assert exc_info.value.status_code == 500

    def test_other_status_without_json_body(self, client, mock_session):
        mock_session.request.return_value = make_response(502, reason="Bad Gateway")
        with pytest.raises(UpstreamError, match="Bad Gateway"):
            client.get_user_story(42)

    def test_network_failure(self, client, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("dns")
        with pytest.raises(UpstreamError, match="Could not reach"):
            client.get_user_story(42)


class TestCreateTestCase:

    def test_posts_json_patch(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"id": 555, "url": "https://api/555"})

        result = client.create_test_case(generated("TC-POS-1"))

        method, url = _called_url(mock_session)
        kwargs = mock_session.request.call_args.kwargs
        assert method == "POST"
        assert url == (
            "https://dev.azure.com/contoso/Web%20Shop/_apis/wit/workitems/$Test%20Case?api-version=7.1"
        )
        assert kwargs["headers"]["Content-Type"] == "application/json-patch+json"
        assert kwargs["json"][0]["value"] == "TC-POS-1: Title of TC-POS-1"
        assert result == UploadResult(work_item_id=555, url="https://api/555")

    @pytest.mark.parametrize("status,error,hint", [
        (404, NotFoundError, "Organization URL"),
        (401, AuthenticationError, "Personal Access Token"),
        (403, UpstreamError, "sufficient permissions"),
        (500, UpstreamError, "network connection"),
    ])
    def test_status_hints(self, client, mock_session, status, error, hint):
        mock_session.request.return_value = make_response(status, {"message": "ado says no"})

        with pytest.raises(error) as exc_info:
            client.create_test_case(generated("TC-POS-1"))

        assert hint in str(exc_info.value)
        assert "ado says no" in str(exc_info.value)
        assert exc_info.value.status_code == status


class TestAddToSuite:

    def test_posts_without_body(self, client, mock_session):
        mock_session.request.return_value = make_response(200, [])

        client.add_test_case_to_suite("7", "8", 555)

        method, url = _called_url(mock_session)
        assert method == "POST"
        assert url == (
            "https://dev.azure.com/contoso/Web%20Shop/_apis/test/Plans/7/suites/8"
            "/testcases/555?api-version=7.1"
        )
        assert "json" not in mock_session.request.call_args.kwargs
        assert "data" not in mock_session.request.call_args.kwargs

    def test_404_hints_at_static_suite(self, client, mock_session):
        mock_session.request.return_value = make_response(404, {"message": "suite not found"})

        with pytest.raises(NotFoundError) as exc_info:
            client.add_test_case_to_suite("7", "8", 555)

        message = str(exc_info.value)
        assert "STATIC" in message
        assert "Test case 555 created" in message
        assert "suite not found" in message

    @pytest.mark.parametrize("status,error,hint", [
        (400, UpstreamError, "invalid"),
        (401, AuthenticationError, "Test Management"),
        (403, UpstreamError, "Test Management"),
        (503, UpstreamError, "ADO Message"),
    ])
    def test_other_statuses(self, client, mock_session, status, error, hint):
        mock_session.request.return_value = make_response(status)
        with pytest.raises(error, match=hint):
            client.add_test_case_to_suite("7", "8", 555)


def test_web_url(client):
    assert client.work_item_web_url(555) == "https://dev.azure.com/contoso/Web%20Shop/_workitems/edit/555"


class TestUnexpectedSuccessBodies:

    def test_sign_in_page_on_create_is_an_upstream_error(self, client, mock_session):
        mock_session.request.return_value = make_response(203, raw="<html>Sign in</html>")

        with pytest.raises(UpstreamError, match="non-JSON") as exc_info:
            client.create_test_case(generated("TC-POS-1"))
        assert exc_info.value.status_code == 203

    def test_create_response_without_id(self, client, mock_session):
        mock_session.request.return_value = make_response(200, {"url": "https://api/x"})
        with pytest.raises(UpstreamError, match="no work item id"):
            client.create_test_case(generated("TC-POS-1"))

    def test_sign_in_page_on_story_fetch(self, client, mock_session):
        mock_session.request.return_value = make_response(203, raw="<html>Sign in</html>")
        with pytest.raises(UpstreamError, match="non-JSON"):
            client.get_user_story(42)
