"""
Unit tests for the task API module.

Tests the TodoAPI class against a mocked requests session and the in-memory
fake service.
"""

import itertools
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from todo_backup.api.todo_api import (
    JSON_CONTENT_TYPE,
    NEXT_LINK_FIELD,
    AuthenticationError,
    TodoAPI,
    TodoAPIError,
    TransientAPIError,
)
from todo_backup.backup.snapshot import TaskPayload
from todo_backup.config.settings import ApiSettings, Session


def response_with(status_code, payload=None, text=None):
    """Build a real requests.Response."""
    response = requests.Response()
    response.status_code = status_code
    body = text if text is not None else json.dumps(payload or {})
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


@pytest.fixture
def http():
    """A mocked requests session."""
    mock_http = MagicMock()
    mock_http.headers = {}
    return mock_http


@pytest.fixture
def api(http):
    """TodoAPI on the default Graph settings with a mocked session."""
    return TodoAPI(Session(access_token="secret-token"), http=http)


class TestTodoAPIInitialization:
    """Tests for TodoAPI initialization."""

    def test_sets_bearer_header(self, api, http):
        """Test that the bearer token is set on the session."""
        assert http.headers["Authorization"] == "Bearer secret-token"
        assert http.headers["Accept"] == "application/json"

    def test_creates_requests_session_by_default(self):
        """Test that a requests.Session is created when none is given."""
        api = TodoAPI(Session(access_token="abc"))
        assert isinstance(api.http, requests.Session)
        assert api.http.headers["Authorization"] == "Bearer abc"

    def test_token_not_in_session_repr(self):
        """Test that the token does not leak through repr()."""
        assert "abc" not in repr(Session(access_token="abc"))


class TestRequestErrors:
    """Tests for status code handling."""

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failures_raise_authentication_error(self, api, http, status_code):
        """Test that 401/403 raise AuthenticationError."""
        http.request.return_value = response_with(status_code, {"error": {}})

        with pytest.raises(AuthenticationError) as exc_info:
            api.get_identity()

        assert exc_info.value.status_code == status_code
        assert http.request.call_count == 1

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_transient_statuses_raise_transient_error(self, api, http, status_code):
        """Test that rate limits and server errors are transient."""
        http.request.return_value = response_with(status_code, text="busy")

        with pytest.raises(TransientAPIError, match="busy"):
            api.list_lists()

    def test_other_client_errors_raise_api_error(self, api, http):
        """Test that other 4xx responses raise TodoAPIError."""
        http.request.return_value = response_with(404, text="not here")

        with pytest.raises(TodoAPIError) as exc_info:
            api.list_lists()

        assert not isinstance(exc_info.value, TransientAPIError)
        assert exc_info.value.status_code == 404

    def test_connection_error_is_transient(self, api, http):
        """Test that a dropped connection is transient."""
        http.request.side_effect = requests.ConnectionError("reset")

        with pytest.raises(TransientAPIError, match="reset"):
            api.get_identity()

    def test_timeout_is_transient(self, api, http):
        """Test that a timeout is transient."""
        http.request.side_effect = requests.Timeout("slow")

        with pytest.raises(TransientAPIError):
            api.get_identity()

    def test_non_json_body_raises_api_error(self, api, http):
        """Test that an HTML error page is reported as an API error."""
        http.request.return_value = response_with(200, text="<html></html>")

        with pytest.raises(TodoAPIError, match="non-JSON"):
            api.get_identity()

    def test_requests_use_configured_timeout(self, http):
        """Test that the request timeout comes from settings."""
        settings = ApiSettings(request_timeout=12.5)
        api = TodoAPI(Session(access_token="t", settings=settings), http=http)
        http.request.return_value = response_with(200, {"value": []})

        api.list_lists()

        assert http.request.call_args.kwargs["timeout"] == 12.5


class TestGetIdentity:
    """Tests for identity resolution."""

    def test_uses_user_principal_name(self, api, http):
        """Test that userPrincipalName becomes the principal id."""
        http.request.return_value = response_with(
            200,
            {"id": "42", "displayName": "Ada", "userPrincipalName": "ada@example.com"},
        )

        identity = api.get_identity()

        assert identity.display_name == "Ada"
        assert identity.principal_id == "ada@example.com"
        http.request.assert_called_once()
        method, url = http.request.call_args.args
        assert method == "GET"
        assert url == "https://graph.microsoft.com/v1.0/me"

    def test_falls_back_to_object_id(self, api, http):
        """Test that the object id is used without a principal name."""
        http.request.return_value = response_with(200, {"id": "42", "displayName": "A"})

        assert api.get_identity().principal_id == "42"


class TestListLists:
    """Tests for listing task lists."""

    def test_parses_value_array(self, api, http):
        """Test that lists are read from the value array."""
        http.request.return_value = response_with(
            200,
            {
                "value": [
                    {"id": "a", "displayName": "Groceries", "@odata.etag": "x"},
                    {"id": "b", "displayName": "Work"},
                ]
            },
        )

        lists = api.list_lists()

        assert [(tl.id, tl.display_name) for tl in lists] == [
            ("a", "Groceries"),
            ("b", "Work"),
        ]
        _, url = http.request.call_args.args
        assert url == "https://graph.microsoft.com/v1.0/me/todo/lists"

    def test_single_request_even_with_next_link(self, api, http):
        """Test that list listing is a single request."""
        http.request.return_value = response_with(
            200, {"value": [], NEXT_LINK_FIELD: "https://example.test/next"}
        )

        api.list_lists()

        assert http.request.call_count == 1


class TestTaskPagination:
    """Tests for cursor pagination of tasks."""

    def test_follows_next_links_until_absent(self, api, http):
        """Test that every page is requested once and the loop stops."""
        http.request.side_effect = [
            response_with(
                200, {"value": [{"title": "1"}], NEXT_LINK_FIELD: "https://x.test/p2"}
            ),
            response_with(
                200, {"value": [{"title": "2"}], NEXT_LINK_FIELD: "https://x.test/p3"}
            ),
            response_with(200, {"value": [{"title": "3"}]}),
        ]

        tasks = api.list_tasks("list-1")

        assert [t["title"] for t in tasks] == ["1", "2", "3"]
        urls = [c.args[1] for c in http.request.call_args_list]
        assert urls == [
            "https://graph.microsoft.com/v1.0/me/todo/lists/list-1/tasks",
            "https://x.test/p2",
            "https://x.test/p3",
        ]

    def test_empty_next_link_ends_pagination(self, api, http):
        """Test that an empty cursor is treated as absent."""
        http.request.return_value = response_with(
            200, {"value": [], NEXT_LINK_FIELD: ""}
        )

        assert list(api.iter_task_pages("l")) == [[]]
        assert http.request.call_count == 1

    def test_fake_service_pages_fetched_exactly_once(self, service, api_for):
        """Test pagination against the fake service with a finite cursor chain."""
        list_id = service.add_list("Big", [{"title": f"t{i}"} for i in range(7)])
        api = api_for(service)

        pages = list(api.iter_task_pages(list_id))

        assert [len(page) for page in pages] == [2, 2, 2, 1]
        gets = [url for method, url in service.calls if method == "GET"]
        assert len(gets) == 4
        assert len(set(gets)) == 4

    def test_endless_cursor_keeps_requesting(self, service, api_for):
        """Test that a server that never ends the chain is followed indefinitely."""
        list_id = service.add_list("Loop", [{"title": "only"}])
        service.endless_pagination = True
        api = api_for(service)

        pages = list(itertools.islice(api.iter_task_pages(list_id), 25))

        assert len(pages) == 25
        assert len(service.calls) == 25

    def test_list_id_is_url_quoted(self, api, http):
        """Test that list ids are quoted in the path but keep '='."""
        http.request.return_value = response_with(200, {"value": []})

        api.list_tasks("AAMk/AD+x==")

        _, url = http.request.call_args.args
        assert url.endswith("/me/todo/lists/AAMk%2FAD%2Bx==/tasks")


class TestCreateList:
    """Tests for list creation."""

    def test_posts_display_name_only_as_utf8_json(self, api, http):
        """Test that the body holds only displayName, UTF-8 encoded."""
        http.request.return_value = response_with(
            201, {"id": "new", "displayName": "Épicerie"}
        )

        created = api.create_list("Épicerie")

        assert created.id == "new"
        method, url = http.request.call_args.args
        kwargs = http.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://graph.microsoft.com/v1.0/me/todo/lists"
        assert kwargs["headers"]["Content-Type"] == JSON_CONTENT_TYPE
        assert kwargs["data"] == '{"displayName": "Épicerie"}'.encode()
        assert json.loads(kwargs["data"].decode("utf-8")) == {
            "displayName": "Épicerie"
        }


class TestCreateTask:
    """Tests for task creation and its retry policy."""

    @pytest.fixture
    def payload(self):
        return TaskPayload(raw='{"title": "Milk", "status": "notStarted"}')

    def test_sends_stored_text_unchanged(self, api, http, payload):
        """Test that the stored payload text is the request body."""
        http.request.return_value = response_with(201, {"id": "t1", "title": "Milk"})

        created = api.create_task("list-1", payload)

        assert created["id"] == "t1"
        kwargs = http.request.call_args.kwargs
        assert kwargs["data"] == payload.raw.encode("utf-8")
        assert kwargs["headers"]["Content-Type"] == JSON_CONTENT_TYPE

    @patch("todo_backup.api.todo_api.time.sleep")
    def test_retries_transient_failures_with_fixed_delay(
        self, mock_sleep, api, http, payload
    ):
        """Test two retries with a 5 second fixed delay by default."""
        http.request.side_effect = [
            response_with(503, text="unavailable"),
            response_with(429, text="slow down"),
            response_with(201, {"id": "t1"}),
        ]

        api.create_task("list-1", payload)

        assert http.request.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [5.0, 5.0]

    @patch("todo_backup.api.todo_api.time.sleep")
    def test_gives_up_after_retries(self, mock_sleep, api, http, payload):
        """Test that the third transient failure is raised."""
        http.request.return_value = response_with(500, text="boom")

        with pytest.raises(TransientAPIError):
            api.create_task("list-1", payload)

        assert http.request.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("todo_backup.api.todo_api.time.sleep")
    def test_auth_failure_not_retried(self, mock_sleep, api, http, payload):
        """Test that an authentication failure is not retried."""
        http.request.return_value = response_with(401, {})

        with pytest.raises(AuthenticationError):
            api.create_task("list-1", payload)

        assert http.request.call_count == 1
        mock_sleep.assert_not_called()

    @patch("todo_backup.api.todo_api.time.sleep")
    def test_other_calls_not_retried(self, mock_sleep, api, http):
        """Test that only task creation is retried."""
        http.request.return_value = response_with(503, text="down")

        with pytest.raises(TransientAPIError):
            api.create_list("Work")

        assert http.request.call_count == 1
        mock_sleep.assert_not_called()

    @patch("todo_backup.api.todo_api.time.sleep")
    def test_retry_count_from_settings(self, mock_sleep, http, payload):
        """Test that the retry policy comes from settings."""
        settings = ApiSettings(task_create_retries=0)
        api = TodoAPI(Session(access_token="t", settings=settings), http=http)
        http.request.return_value = response_with(503, text="down")

        with pytest.raises(TransientAPIError):
            api.create_task("list-1", payload)

        assert http.request.call_count == 1
