"""
Backup and restore functionality for task list data.

This module provides the snapshot data model and the manager that writes
snapshots to disk and reads them back for restore.
"""

from todo_backup.backup.manager import BackupManager
from todo_backup.backup.snapshot import (
    SNAPSHOT_VERSION,
    AccountIdentity,
    Snapshot,
    SnapshotError,
    SnapshotInfo,
    TaskGroup,
    TaskPayload,
    TodoList,
)

__all__ = [
    "SNAPSHOT_VERSION",
    "AccountIdentity",
    "BackupManager",
    "Snapshot",
    "SnapshotError",
    "SnapshotInfo",
    "TaskGroup",
    "TaskPayload",
    "TodoList",
]
