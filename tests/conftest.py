"""
Shared fixtures: an in-memory stand-in for the task REST service.

FakeTodoService implements the request() method of requests.Session for
the identity, list and task endpoints, paginates task listings with
@odata.nextLink links and records every call it receives.
"""

import json
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from todo_backup.api.todo_api import TodoAPI
from todo_backup.config.settings import ApiSettings, Session

BASE_URL = "https://graph.example.test/v1.0"


def make_response(status_code: int, payload=None, text: str | None = None):
    """Build a real requests.Response with a JSON or text body."""
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = json.dumps(payload or {}).encode("utf-8")
    response.encoding = "utf-8"
    return response


class FakeTodoService:
    """In-memory task service speaking the Graph me/todo dialect."""

    def __init__(
        self,
        display_name: str = "Ada Lovelace",
        principal: str = "ada@example.com",
        page_size: int = 2,
    ):
        self.headers: dict[str, str] = {}
        self.identity = {
            "id": f"user-{principal}",
            "displayName": display_name,
            "userPrincipalName": principal,
        }
        self.page_size = page_size
        self.lists: list[dict] = []
        self.tasks: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.bodies: list[bytes] = []
        self.token_valid = True
        self.task_post_failures: list[int] = []
        self.endless_pagination = False
        self._counter = 0

    # -- setup helpers -------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}="

    def add_list(self, display_name: str, tasks=()) -> str:
        list_id = self._new_id("list")
        self.lists.append(
            {
                "@odata.etag": f'W/"{list_id}"',
                "id": list_id,
                "displayName": display_name,
                "isOwner": True,
                "wellknownListName": "none",
            }
        )
        self.tasks[list_id] = []
        for task in tasks:
            self.add_task(list_id, task)
        return list_id

    def add_task(self, list_id: str, task: dict) -> dict:
        stored = {"@odata.etag": 'W/"etag"', "id": self._new_id("task"), **task}
        self.tasks[list_id].append(stored)
        return stored

    # -- inspection helpers --------------------------------------------------

    @property
    def post_calls(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] == "POST"]

    def list_names(self) -> list[str]:
        return [item["displayName"] for item in self.lists]

    def tasks_in(self, display_name: str) -> list[dict]:
        matches = [item for item in self.lists if item["displayName"] == display_name]
        assert len(matches) == 1, f"expected one list named {display_name!r}"
        return self.tasks[matches[0]["id"]]

    # -- requests.Session interface ------------------------------------------

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.calls.append((method, url))
        if data is not None:
            self.bodies.append(data)

        if not self.token_valid:
            return make_response(401, {"error": {"code": "InvalidAuthenticationToken"}})

        parts = urlsplit(url)
        path = parts.path[len(urlsplit(BASE_URL).path) :].strip("/").split("/")
        query = parse_qs(parts.query)

        if method == "GET" and path == ["me"]:
            return make_response(200, self.identity)

        if path[:3] == ["me", "todo", "lists"]:
            if len(path) == 3:
                if method == "GET":
                    return make_response(200, {"value": list(self.lists)})
                if method == "POST":
                    body = json.loads(data.decode("utf-8"))
                    self.add_list(body["displayName"])
                    return make_response(201, self.lists[-1])

            if len(path) == 5 and path[4] == "tasks":
                list_id = path[3]
                if list_id not in self.tasks:
                    return make_response(404, {"error": {"code": "NotFound"}})
                if method == "GET":
                    return self._task_page(url, list_id, query)
                if method == "POST":
                    if self.task_post_failures:
                        return make_response(self.task_post_failures.pop(0), {})
                    task = json.loads(data.decode("utf-8"))
                    return make_response(201, self.add_task(list_id, task))

        return make_response(400, {"error": {"code": "BadRequest"}})

    def _task_page(self, url, list_id, query):
        skip = int(query.get("$skip", ["0"])[0])
        tasks = self.tasks[list_id]
        page = tasks[skip : skip + self.page_size]
        body = {"value": page}
        next_skip = skip + self.page_size
        if self.endless_pagination or next_skip < len(tasks):
            base = url.split("?")[0]
            body["@odata.nextLink"] = f"{base}?$skip={next_skip}"
        return make_response(200, body)


def make_api(service: FakeTodoService, token: str = "test-token", **settings):
    """TodoAPI bound to a fake service, with no retry delay by default."""
    settings.setdefault("task_create_retry_delay", 0.0)
    api_settings = ApiSettings(base_url=BASE_URL, **settings)
    return TodoAPI(Session(access_token=token, settings=api_settings), http=service)


@pytest.fixture
def service():
    """An empty fake task service."""
    return FakeTodoService()


@pytest.fixture
def source_service():
    """A fake task service holding a few lists and tasks."""
    svc = FakeTodoService(display_name="Source User", principal="source@example.com")
    svc.add_list(
        "Groceries",
        [
            {"title": "Milk", "status": "notStarted"},
            {"title": "Crème fraîche", "status": "notStarted"},
            {"title": "Bread", "status": "completed", "importance": "high"},
        ],
    )
    svc.add_list("Work", [{"title": "Quarterly report", "body": {"content": "Q3"}}])
    svc.add_list("Someday", [])
    return svc


@pytest.fixture
def target_service():
    """An empty fake task service for another account."""
    return FakeTodoService(display_name="Target User", principal="target@example.com")


@pytest.fixture
def api_for():
    """Factory building a TodoAPI for a fake service."""
    return make_api
