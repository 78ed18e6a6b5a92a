"""
Session settings for talking to the task API.

The API location, the access token and the retry policy travel together
in a Session value that is passed explicitly to the API client, the
exporter and the importer.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any
from urllib.parse import quote

DEFAULT_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_IDENTITY_PATH = "me"
DEFAULT_ACCOUNT_PATH = "me/todo"
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds

# Task creation is the only retried call
DEFAULT_TASK_CREATE_RETRIES = 2
DEFAULT_TASK_CREATE_RETRY_DELAY = 5.0  # seconds


@dataclass(frozen=True)
class ApiSettings:
    """
    Location of the task API and request policy.

    Attributes:
        base_url: API root, e.g. https://graph.microsoft.com/v1.0
        identity_path: Path of the signed-in identity (GET)
        account_path: Path under which the account's lists live
        request_timeout: Timeout for each HTTP request in seconds
        task_create_retries: Extra attempts for a task creation after a
            transient failure
        task_create_retry_delay: Fixed delay between those attempts
    """

    base_url: str = DEFAULT_BASE_URL
    identity_path: str = DEFAULT_IDENTITY_PATH
    account_path: str = DEFAULT_ACCOUNT_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    task_create_retries: int = DEFAULT_TASK_CREATE_RETRIES
    task_create_retry_delay: float = DEFAULT_TASK_CREATE_RETRY_DELAY

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> ApiSettings:
        """
        Build settings from a loaded configuration dictionary.

        Keys that are not settings are ignored; missing keys keep
        their defaults.
        """
        if not config:
            return cls()
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config.items() if k in names})

    def _url(self, *parts: str) -> str:
        segments = [self.base_url.rstrip("/")]
        segments.extend(part.strip("/") for part in parts if part.strip("/"))
        return "/".join(segments)

    def identity_url(self) -> str:
        return self._url(self.identity_path)

    def lists_url(self) -> str:
        return self._url(self.account_path, "lists")

    def tasks_url(self, list_id: str) -> str:
        return self._url(
            self.account_path, "lists", quote(list_id, safe="="), "tasks"
        )


@dataclass(frozen=True)
class Session:
    """Settings plus the bearer token for one account."""

    access_token: str = field(repr=False)
    settings: ApiSettings = field(default_factory=ApiSettings)
