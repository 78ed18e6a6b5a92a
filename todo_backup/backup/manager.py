"""
Backup manager for snapshot persistence.

Provides functionality to:
- Write snapshots as JSON files with timestamp naming
- List available snapshots sorted by timestamp
- Load and validate snapshots for restore operations
- Apply retention policy to limit backup count
"""

from __future__ import annotations

import contextlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from todo_backup.backup.snapshot import Snapshot, SnapshotError

logger = logging.getLogger(__name__)


class BackupManager:
    """
    Manager for writing and reading task list snapshots.

    Attributes:
        backup_dir: Directory path where backups are stored
        retention_count: Maximum number of backups to retain (0 = unlimited)

    Usage:
        bm = BackupManager(Path("~/.todo-backup/backups"), retention_count=10)

        # Write a snapshot under a timestamped name
        path = bm.save_snapshot(snapshot)

        # List available backups, newest first
        backups = bm.list_backups()

        # Load a snapshot for import
        snapshot = bm.load_snapshot(path)
    """

    BACKUP_PREFIX = "backup_"
    BACKUP_SUFFIX = ".json"

    def __init__(self, backup_dir: Path | str, retention_count: int = 10):
        """
        Initialize the backup manager.

        Args:
            backup_dir: Directory path where backups will be stored
            retention_count: Maximum number of backups to keep (0 = keep all)
        """
        self.backup_dir = Path(backup_dir).expanduser()
        self.retention_count = retention_count

        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def default_backup_path(self, timestamp: datetime | None = None) -> Path:
        """
        Build a timestamped path in the backup directory.

        Format: backup_YYYYMMDD_HHMMSS.json (UTC). If that file already
        exists, a counter is appended: backup_YYYYMMDD_HHMMSS_1.json.
        """
        timestamp = timestamp or datetime.now(timezone.utc)
        stem = f"{self.BACKUP_PREFIX}{timestamp.strftime('%Y%m%d_%H%M%S')}"
        path = self.backup_dir / f"{stem}{self.BACKUP_SUFFIX}"
        counter = 0
        while path.exists():
            counter += 1
            path = self.backup_dir / f"{stem}_{counter}{self.BACKUP_SUFFIX}"
        return path

    def save_snapshot(self, snapshot: Snapshot, path: Path | str | None = None) -> Path:
        """
        Write a snapshot to disk.

        Retention is applied when the file lands in the backup directory.
        The file just written is never pruned.

        Args:
            snapshot: Snapshot to write
            path: Target file. Defaults to a timestamped file in backup_dir.

        Returns:
            Path of the written file

        Raises:
            SnapshotError: If the file cannot be written
        """
        target = Path(path).expanduser() if path else self.default_backup_path()

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            raise SnapshotError(f"Failed to write snapshot {target}: {e}") from e

        logger.info(
            f"Wrote snapshot with {len(snapshot.lists)} lists and "
            f"{snapshot.task_count} tasks to {target}"
        )

        if target.resolve().parent == self.backup_dir.resolve():
            self.apply_retention(keep=target)

        return target

    def load_snapshot(self, backup_file: Path | str) -> Snapshot:
        """
        Load and validate a snapshot file.

        Args:
            backup_file: Path to the snapshot file

        Returns:
            The parsed Snapshot

        Raises:
            SnapshotError: If the file is missing, unreadable or malformed
        """
        path = Path(backup_file).expanduser()

        if not path.is_file():
            raise SnapshotError(f"Snapshot file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot file is not valid JSON: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotError(f"Failed to read snapshot file {path}: {e}") from e

        snapshot = Snapshot.from_dict(data)
        logger.debug(
            f"Loaded snapshot {path}: {len(snapshot.lists)} lists, "
            f"{snapshot.task_count} tasks"
        )
        return snapshot

    def list_backups(self) -> list[Path]:
        """
        List all backup files in the backup directory, newest first.

        Returns:
            List of Path objects for backup files
        """
        backup_files = list(
            self.backup_dir.glob(f"{self.BACKUP_PREFIX}*{self.BACKUP_SUFFIX}")
        )
        # Timestamped names sort chronologically; mtime breaks ties
        backup_files.sort(key=lambda p: (p.name, p.stat().st_mtime), reverse=True)
        return backup_files

    def apply_retention(self, keep: Path | None = None) -> None:
        """
        Delete backups beyond the newest retention_count.

        If retention_count is 0, all backups are kept.

        Args:
            keep: Backup that is never deleted, whatever its name. It counts
                toward retention_count.
        """
        if self.retention_count == 0:
            return

        backups = self.list_backups()
        limit = self.retention_count
        if keep is not None:
            kept = keep.resolve()
            backups = [b for b in backups if b.resolve() != kept]
            limit -= 1

        for backup in backups[limit:]:
            with contextlib.suppress(OSError):
                backup.unlink()
                logger.debug(f"Removed old backup {backup}")
