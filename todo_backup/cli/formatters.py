"""CLI output formatting functions.

This module contains the narration printed while exporting and importing,
and the table of available backups.
"""

from pathlib import Path
from typing import TYPE_CHECKING

import click

from todo_backup.backup.snapshot import SnapshotError

if TYPE_CHECKING:
    from todo_backup.backup.manager import BackupManager
    from todo_backup.backup.snapshot import TodoList
    from todo_backup.sync.exporter import ExportResult
    from todo_backup.sync.importer import ImportPlan, ImportResult

# Longest task title shown on a progress line
MAX_TITLE_LENGTH = 60


def truncate(text: str, limit: int = MAX_TITLE_LENGTH) -> str:
    """Shorten text to limit characters, marking the cut with '...'."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def show_list_progress(
    index: int, total: int, todo_list: "TodoList", task_count: int
) -> None:
    """Print one line per exported list."""
    click.echo(f"[{index}/{total}] {todo_list.display_name}: {task_count} tasks")


def show_task_progress(index: int, total: int, title: str, list_name: str) -> None:
    """Print one line per imported task."""
    if index == 1:
        click.echo(f"\n{list_name} ({total} tasks)")
    click.echo(f"  [{index}/{total}] {truncate(title) or '(untitled)'}")


def show_export_result(result: "ExportResult") -> None:
    click.echo(
        click.style(
            f"\nExported {result.list_count} lists and {result.task_count} tasks.",
            fg="green",
        )
    )
    click.echo(f"Snapshot: {result.path}")


def show_import_plan(plan: "ImportPlan") -> None:
    """Print the summary shown before the confirmation prompt."""
    click.echo("\n=== Import Summary ===")
    click.echo(plan.summary())
    click.echo()


def show_import_result(result: "ImportResult") -> None:
    click.echo(
        click.style(
            f"\nImport complete: {len(result.lists_created)} lists and "
            f"{result.tasks_created} tasks created.",
            fg="green",
        )
    )
    for name, count in result.tasks_by_list.items():
        click.echo(f"  {name}: {count} tasks")


def show_backup_table(bm: "BackupManager", backups: list[Path]) -> None:
    """
    Print the available backups with their creation time and account.

    Unreadable files are listed as invalid rather than skipped.
    """
    click.echo(f"Available backups in {bm.backup_dir}:\n")
    click.echo(f"{'Filename':<32} {'Created (UTC)':<20} {'Account':<30} {'Size':>10}")
    click.echo("-" * 95)

    for backup_path in backups:
        size_kb = backup_path.stat().st_size / 1024
        try:
            snapshot = bm.load_snapshot(backup_path)
            created = snapshot.about.backup_created_at[:19]
            account = truncate(str(snapshot.about.identity), 30)
        except SnapshotError:
            created = "-"
            account = click.style("invalid snapshot", fg="red")

        click.echo(
            f"{backup_path.name:<32} {created:<20} {account:<30} {size_kb:>7.1f} KB"
        )

    click.echo(f"\nTotal: {len(backups)} backup(s)")
    click.echo("\nTo restore, use: todo-backup import <path>")
