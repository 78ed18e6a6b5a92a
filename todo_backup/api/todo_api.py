"""
Task API wrapper for backup and restore.

Provides a thin interface to a Microsoft To Do style REST API for:
- Resolving the signed-in identity
- Listing task lists and following cursor pagination for tasks
- Creating lists and tasks
- Fixed-delay retry of task creation on transient failures
"""

import json
import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

import requests
from requests.exceptions import RequestException

from todo_backup.backup.snapshot import AccountIdentity, TaskPayload, TodoList
from todo_backup.config.settings import Session

# Response field holding the items of a collection
VALUE_FIELD = "value"

# Response field holding the absolute URL of the next page
NEXT_LINK_FIELD = "@odata.nextLink"

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Statuses worth another attempt
TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

# Statuses meaning the token is invalid, expired or lacks permission
AUTH_STATUS_CODES = frozenset({401, 403})

logger = logging.getLogger(__name__)


class TodoAPIError(Exception):
    """Raised when a task API operation fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(TodoAPIError):
    """Raised when the API rejects the access token."""

    pass


class TransientAPIError(TodoAPIError):
    """Raised for rate limiting, server errors and dropped connections."""

    pass


class TodoAPI:
    """
    Task API wrapper for list and task operations.

    Every call is a single blocking request, except task creation, which is
    retried a fixed number of times with a fixed delay after a transient
    failure.

    Attributes:
        session: Session settings and access token
        http: requests.Session carrying the bearer token

    Usage:
        api = TodoAPI(Session(access_token=token))

        identity = api.get_identity()
        for todo_list in api.list_lists():
            tasks = api.list_tasks(todo_list.id)

        new_list = api.create_list("Groceries")
        api.create_task(new_list.id, payload)
    """

    def __init__(self, session: Session, http: requests.Session | None = None):
        """
        Initialize the API wrapper.

        Args:
            session: Settings and bearer token for the account
            http: Optional requests.Session to send requests with
        """
        self.session = session
        self.settings = session.settings
        self.http = http or requests.Session()
        self.http.headers.update(
            {
                "Authorization": f"Bearer {session.access_token}",
                "Accept": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        url: str,
        operation_name: str,
        body: bytes | None = None,
    ) -> dict[str, Any]:
        """
        Send one request and decode the JSON response.

        Raises:
            AuthenticationError: On 401/403
            TransientAPIError: On retryable statuses and network failures
            TodoAPIError: On any other failure
        """
        headers = {"Content-Type": JSON_CONTENT_TYPE} if body is not None else None
        logger.debug(f"{operation_name}: {method} {url}")

        try:
            response = self.http.request(
                method,
                url,
                data=body,
                headers=headers,
                timeout=self.settings.request_timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientAPIError(f"{operation_name} failed: {e}") from e
        except RequestException as e:
            raise TodoAPIError(f"{operation_name} failed: {e}") from e

        status_code = response.status_code
        if status_code in AUTH_STATUS_CODES:
            raise AuthenticationError(
                f"{operation_name} was rejected ({status_code}); the access "
                "token is invalid, expired or lacks permission",
                status_code,
            )
        if status_code in TRANSIENT_STATUS_CODES:
            raise TransientAPIError(
                f"{operation_name} failed with status {status_code}: {response.text}",
                status_code,
            )
        if not 200 <= status_code < 300:
            raise TodoAPIError(
                f"{operation_name} failed with status {status_code}: {response.text}",
                status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TodoAPIError(
                f"{operation_name} returned a non-JSON response", status_code
            ) from e
        if not isinstance(data, dict):
            raise TodoAPIError(
                f"{operation_name} returned an unexpected response", status_code
            )
        return data

    def _retry_fixed_delay(
        self, operation: Callable[[], Any], operation_name: str
    ) -> Any:
        """
        Run an operation, retrying transient failures with a fixed delay.

        Args:
            operation: Callable to execute
            operation_name: Name for logging purposes

        Returns:
            Result of the operation

        Raises:
            TransientAPIError: If the last attempt still failed transiently
            TodoAPIError: For non-transient failures (never retried)
        """
        retries = self.settings.task_create_retries
        delay = self.settings.task_create_retry_delay

        for attempt in range(retries + 1):
            try:
                return operation()
            except TransientAPIError as e:
                if attempt >= retries:
                    logger.error(
                        f"{operation_name} failed after {retries + 1} attempts: {e}"
                    )
                    raise
                logger.warning(
                    f"{operation_name} failed ({e}), retrying in {delay:.1f}s "
                    f"(retry {attempt + 1}/{retries})"
                )
                time.sleep(delay)

        # range() above always returns or raises
        raise TodoAPIError(f"{operation_name} failed after all retries")

    def get_identity(self) -> AccountIdentity:
        """
        Resolve the account the access token belongs to.

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        data = self._request("GET", self.settings.identity_url(), "get_identity")
        identity = AccountIdentity.from_api_response(data)
        logger.debug(f"Signed in as {identity}")
        return identity

    def list_lists(self) -> list[TodoList]:
        """
        List all task lists of the account in a single request.

        Returns:
            TodoList objects in API order
        """
        data = self._request("GET", self.settings.lists_url(), "list_lists")
        lists = [TodoList.from_api_response(item) for item in data.get(VALUE_FIELD, [])]
        logger.debug(f"Listed {len(lists)} task lists")
        return lists

    def iter_task_pages(self, list_id: str) -> Iterator[list[dict[str, Any]]]:
        """
        Yield the tasks of a list one page at a time.

        Follows the next-page link of each response until a response
        carries none. Each page is requested exactly once. The loop has
        no page limit, so it relies on the server ending the chain.

        Args:
            list_id: Id of the list in this account

        Yields:
            Raw task objects of one page
        """
        url: str | None = self.settings.tasks_url(list_id)
        page_number = 0

        while url:
            page_number += 1
            operation_name = f"list_tasks({list_id}) page {page_number}"
            data = self._request("GET", url, operation_name)
            yield list(data.get(VALUE_FIELD, []))
            url = data.get(NEXT_LINK_FIELD) or None

    def list_tasks(self, list_id: str) -> list[dict[str, Any]]:
        """Fetch every task of a list across all pages."""
        tasks: list[dict[str, Any]] = []
        for page in self.iter_task_pages(list_id):
            tasks.extend(page)
        logger.debug(f"Listed {len(tasks)} tasks in list {list_id}")
        return tasks

    def create_list(self, display_name: str) -> TodoList:
        """
        Create a task list.

        The request body carries only the display name.
        """
        body = json.dumps({"displayName": display_name}, ensure_ascii=False)
        data = self._request(
            "POST", self.settings.lists_url(), "create_list", body.encode("utf-8")
        )
        created = TodoList.from_api_response(data)
        logger.info(f"Created list: {created.display_name}")
        return created

    def create_task(self, list_id: str, payload: TaskPayload) -> dict[str, Any]:
        """
        Create a task from a stored payload.

        The payload text is sent unchanged as the request body.

        Returns:
            The created task as returned by the API
        """
        url = self.settings.tasks_url(list_id)
        body = payload.to_request_body()

        def execute_create() -> dict[str, Any]:
            return self._request("POST", url, "create_task", body)

        return self._retry_fixed_delay(execute_create, f"create_task({list_id})")
