"""
Snapshot data model for task list backups.

A snapshot holds the identity of the exported account, the account's task
lists and, per list, the tasks captured from it. Tasks are kept as the JSON
text returned by the API (minus server-assigned identity) so fields this
tool does not know about survive a backup/restore cycle unchanged.

Serialized format::

    {
        "about": {
            "displayName": "Ada Lovelace",
            "principalId": "ada@example.com",
            "backupCreatedAt": "2024-01-20T10:30:00+00:00",
            "version": "1.0"
        },
        "lists": [{"id": "AAMkAD...", "displayName": "Groceries"}],
        "taskGroups": [
            {
                "sourceListId": "AAMkAD...",
                "tasks": ["{\\"title\\": \\"Milk\\", \\"status\\": \\"notStarted\\"}"]
            }
        ]
    }
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

# Snapshot format version written by this tool
SNAPSHOT_VERSION = "1.0"

# Versions this tool can read
SUPPORTED_VERSIONS = frozenset({SNAPSHOT_VERSION})

# Task fields assigned by the server; a restored task gets new ones
STRIPPED_TASK_FIELDS = ("id", "@odata.etag")


class SnapshotError(Exception):
    """Raised when a snapshot cannot be read, written or is malformed."""

    pass


@dataclass(frozen=True)
class AccountIdentity:
    """Signed-in account as reported by the identity endpoint."""

    display_name: str
    principal_id: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> AccountIdentity:
        """
        Create an identity from the identity endpoint response.

        The principal id is the user principal name when the API
        reports one, otherwise the object id.
        """
        return cls(
            display_name=data.get("displayName") or "",
            principal_id=data.get("userPrincipalName") or data.get("id") or "",
        )

    def __str__(self) -> str:
        if self.display_name and self.principal_id:
            return f"{self.display_name} <{self.principal_id}>"
        return self.display_name or self.principal_id or "unknown account"


@dataclass(frozen=True)
class SnapshotInfo:
    """The snapshot's "about" block."""

    display_name: str
    principal_id: str
    backup_created_at: str
    version: str = SNAPSHOT_VERSION

    @property
    def identity(self) -> AccountIdentity:
        return AccountIdentity(self.display_name, self.principal_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "displayName": self.display_name,
            "principalId": self.principal_id,
            "backupCreatedAt": self.backup_created_at,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Any) -> SnapshotInfo:
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot 'about' must be an object")
        version = data.get("version")
        if version not in SUPPORTED_VERSIONS:
            raise SnapshotError(f"Unsupported snapshot version: {version!r}")
        return cls(
            display_name=data.get("displayName") or "",
            principal_id=data.get("principalId") or "",
            backup_created_at=data.get("backupCreatedAt") or "",
            version=version,
        )


@dataclass(frozen=True)
class TodoList:
    """
    A task list.

    The id is only meaningful inside the account it came from; the
    display name is what identifies a list across accounts.
    """

    id: str
    display_name: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> TodoList:
        return cls(id=data.get("id", ""), display_name=data.get("displayName", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "displayName": self.display_name}

    @classmethod
    def from_dict(cls, data: Any) -> TodoList:
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot list entries must be objects")
        list_id = data.get("id")
        name = data.get("displayName")
        if not isinstance(list_id, str) or not list_id:
            raise SnapshotError("Snapshot list entry is missing 'id'")
        if not isinstance(name, str):
            raise SnapshotError(f"Snapshot list {list_id!r} is missing 'displayName'")
        return cls(id=list_id, display_name=name)


@dataclass(frozen=True)
class TaskPayload:
    """
    One task, stored as the JSON text of the API representation.

    Only the title is ever read back out of the payload; everything else
    is handed to the API as-is on restore.
    """

    raw: str

    @classmethod
    def from_api_response(cls, task: dict[str, Any]) -> TaskPayload:
        """Strip server-assigned identity fields and keep the rest as text."""
        cleaned = {k: v for k, v in task.items() if k not in STRIPPED_TASK_FIELDS}
        return cls(raw=json.dumps(cleaned, ensure_ascii=False))

    @property
    def title(self) -> str:
        try:
            data = json.loads(self.raw)
        except ValueError:
            return ""
        if not isinstance(data, dict):
            return ""
        title = data.get("title")
        return title if isinstance(title, str) else ""

    def to_request_body(self) -> bytes:
        return self.raw.encode("utf-8")


@dataclass(frozen=True)
class TaskGroup:
    """Tasks captured from one source list, in the order the API returned them."""

    source_list_id: str
    tasks: tuple[TaskPayload, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceListId": self.source_list_id,
            "tasks": [task.raw for task in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: Any) -> TaskGroup:
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot task groups must be objects")
        source_list_id = data.get("sourceListId")
        if not isinstance(source_list_id, str) or not source_list_id:
            raise SnapshotError("Snapshot task group is missing 'sourceListId'")
        tasks = data.get("tasks", [])
        if not isinstance(tasks, list) or not all(isinstance(t, str) for t in tasks):
            raise SnapshotError(
                f"Tasks of group {source_list_id!r} must be a list of JSON strings"
            )
        return cls(
            source_list_id=source_list_id,
            tasks=tuple(TaskPayload(raw=t) for t in tasks),
        )


@dataclass(frozen=True)
class Snapshot:
    """
    A complete backup of one account's task lists and tasks.

    Every task group belongs to exactly one list of the same snapshot.
    """

    about: SnapshotInfo
    lists: tuple[TodoList, ...] = ()
    task_groups: tuple[TaskGroup, ...] = ()
    _names_by_id: dict[str, str] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        counts = Counter(todo_list.id for todo_list in self.lists)
        duplicates = sorted(list_id for list_id, n in counts.items() if n > 1)
        if duplicates:
            raise SnapshotError(f"Duplicate list ids in snapshot: {duplicates}")

        self._names_by_id.update({tl.id: tl.display_name for tl in self.lists})

        unknown = [
            group.source_list_id
            for group in self.task_groups
            if group.source_list_id not in self._names_by_id
        ]
        if unknown:
            raise SnapshotError(f"Task groups reference unknown lists: {unknown}")

    @property
    def task_count(self) -> int:
        return sum(len(group.tasks) for group in self.task_groups)

    def list_name_for(self, source_list_id: str) -> str:
        """Display name of a source list, looked up by its id."""
        try:
            return self._names_by_id[source_list_id]
        except KeyError:
            raise SnapshotError(f"Unknown source list id: {source_list_id}") from None

    def to_dict(self) -> dict[str, Any]:
        return {
            "about": self.about.to_dict(),
            "lists": [todo_list.to_dict() for todo_list in self.lists],
            "taskGroups": [group.to_dict() for group in self.task_groups],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Snapshot:
        """
        Rebuild a snapshot from its parsed JSON form.

        Raises:
            SnapshotError: If the structure is invalid
        """
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot root must be an object")
        for key in ("about", "lists", "taskGroups"):
            if key not in data:
                raise SnapshotError(f"Snapshot is missing '{key}'")
        if not isinstance(data["lists"], list):
            raise SnapshotError("Snapshot 'lists' must be an array")
        if not isinstance(data["taskGroups"], list):
            raise SnapshotError("Snapshot 'taskGroups' must be an array")

        return cls(
            about=SnapshotInfo.from_dict(data["about"]),
            lists=tuple(TodoList.from_dict(item) for item in data["lists"]),
            task_groups=tuple(TaskGroup.from_dict(g) for g in data["taskGroups"]),
        )
