"""
Exporter for task list backups.

Reads the signed-in identity, every task list and every task of the
account and builds a Snapshot from them. Nothing is written unless the
whole export succeeds.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from todo_backup.api.todo_api import TodoAPI
from todo_backup.backup.manager import BackupManager
from todo_backup.backup.snapshot import (
    SNAPSHOT_VERSION,
    Snapshot,
    SnapshotInfo,
    TaskGroup,
    TaskPayload,
    TodoList,
)

logger = logging.getLogger(__name__)

# Called after each list with (index, total, list, task_count)
ListProgressCallback = Callable[[int, int, TodoList, int], None]


@dataclass
class ExportResult:
    """Outcome of an export."""

    snapshot: Snapshot
    path: Path

    @property
    def list_count(self) -> int:
        return len(self.snapshot.lists)

    @property
    def task_count(self) -> int:
        return self.snapshot.task_count


class Exporter:
    """
    Builds and saves a snapshot of one account.

    Usage:
        exporter = Exporter(api, BackupManager(backup_dir))
        result = exporter.export()
        print(f"Saved {result.task_count} tasks to {result.path}")
    """

    def __init__(
        self,
        api: TodoAPI,
        backup_manager: BackupManager,
        on_list: Optional[ListProgressCallback] = None,
    ):
        self.api = api
        self.backup_manager = backup_manager
        self.on_list = on_list

    def build_snapshot(self) -> Snapshot:
        """
        Read the account and build a snapshot of it.

        Any API failure propagates and aborts the export.
        """
        identity = self.api.get_identity()
        logger.info(f"Exporting task lists of {identity}")

        lists = self.api.list_lists()
        groups: list[TaskGroup] = []

        for index, todo_list in enumerate(lists, start=1):
            payloads = tuple(
                TaskPayload.from_api_response(task)
                for page in self.api.iter_task_pages(todo_list.id)
                for task in page
            )
            groups.append(TaskGroup(source_list_id=todo_list.id, tasks=payloads))

            logger.debug(
                f"List {index}/{len(lists)} '{todo_list.display_name}': "
                f"{len(payloads)} tasks"
            )
            if self.on_list:
                self.on_list(index, len(lists), todo_list, len(payloads))

        about = SnapshotInfo(
            display_name=identity.display_name,
            principal_id=identity.principal_id,
            backup_created_at=datetime.now(timezone.utc).isoformat(),
            version=SNAPSHOT_VERSION,
        )
        return Snapshot(about=about, lists=tuple(lists), task_groups=tuple(groups))

    def export(self, output_path: Optional[Path] = None) -> ExportResult:
        """
        Export the account to a snapshot file.

        Args:
            output_path: Target file. Defaults to a timestamped file in the
                backup directory.

        Returns:
            ExportResult with the snapshot and the written path
        """
        snapshot = self.build_snapshot()
        path = self.backup_manager.save_snapshot(snapshot, output_path)
        logger.info(
            f"Export complete: {len(snapshot.lists)} lists, "
            f"{snapshot.task_count} tasks"
        )
        return ExportResult(snapshot=snapshot, path=path)
