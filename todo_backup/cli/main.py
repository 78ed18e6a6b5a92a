"""
Command-line interface for todo_backup.

Provides CLI commands to export the task lists of an account to a snapshot
file and to import a snapshot into an account.

Usage:
    # Show help
    todo-backup --help

    # Export to a timestamped file in the backup directory
    todo-backup export

    # Export to a chosen file
    todo-backup export --output my-tasks.json

    # Import into the signed-in account
    todo-backup import my-tasks.json
    todo-backup import my-tasks.json --dry-run
"""

import sys
from pathlib import Path
from typing import Any, Optional

import click

from todo_backup import __version__
from todo_backup.api.todo_api import AuthenticationError, TodoAPI, TodoAPIError
from todo_backup.auth.token import TokenError, prompt_for_token, read_token_file
from todo_backup.backup.manager import BackupManager
from todo_backup.backup.snapshot import SnapshotError
from todo_backup.cli.formatters import (
    show_backup_table,
    show_export_result,
    show_import_plan,
    show_import_result,
    show_list_progress,
    show_task_progress,
)
from todo_backup.config.generator import save_config_file
from todo_backup.config.loader import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from todo_backup.config.settings import ApiSettings, Session
from todo_backup.sync.exporter import Exporter
from todo_backup.sync.importer import Importer, ListResolutionError
from todo_backup.utils import resolve_config_dir
from todo_backup.utils.logging import cleanup_old_logs, get_logger, setup_logging

# Default number of snapshots kept in the backup directory
DEFAULT_BACKUP_RETENTION = 10

# Default number of daily log files kept
DEFAULT_LOG_RETENTION = 10

# Failures that end a command with a one-line error
EXPECTED_ERRORS = (
    TokenError,
    AuthenticationError,
    SnapshotError,
    ListResolutionError,
    TodoAPIError,
)


def get_config_dir(config_dir: Optional[str]) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_file: Optional[str], config_dir: Path) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file).expanduser()
    return config_dir / DEFAULT_CONFIG_FILE


def get_backup_manager(ctx: click.Context) -> BackupManager:
    """Backup manager for the configured backup directory."""
    config: dict[str, Any] = ctx.obj.get("config", {})
    backup_dir_config = config.get("backup_dir")
    backup_dir = (
        Path(backup_dir_config).expanduser()
        if backup_dir_config
        else ctx.obj["config_dir"] / "backups"
    )
    retention = config.get("backup_retention_count", DEFAULT_BACKUP_RETENTION)
    return BackupManager(backup_dir, retention_count=retention)


def get_access_token(token_file: Optional[str]) -> str:
    """Read the token from token_file, or prompt for it."""
    if token_file:
        return read_token_file(token_file)
    return prompt_for_token()


def build_api(ctx: click.Context, token: str) -> TodoAPI:
    """API client for the configured service and the given token."""
    settings = ApiSettings.from_config(ctx.obj.get("config", {}))
    return TodoAPI(Session(access_token=token, settings=settings))


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


token_file_option = click.option(
    "--token-file",
    "-t",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    help="Read the access token from a file instead of prompting for it.",
)


@click.group()
@click.version_option(version=__version__, prog_name="todo-backup")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="TODO_BACKUP_CONFIG_DIR",
    help="Configuration directory path (default: ~/.todo-backup).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="TODO_BACKUP_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: Optional[str],
    config_file: Optional[str],
) -> None:
    """
    Microsoft To Do Backup and Restore.

    Exports every task list and task of an account to a JSON snapshot and
    imports a snapshot into the same or another account.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(config_file, resolved_config_dir)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    config: dict[str, Any] = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        # Keep working on defaults
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = (
        Path(config["log_dir"]).expanduser()
        if config.get("log_dir")
        else resolved_config_dir / "logs"
    )
    setup_logging(verbose=effective_verbose, log_dir=log_dir)

    log_retention = config.get("log_retention_count", DEFAULT_LOG_RETENTION)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Export Command
# =============================================================================


@cli.command("export")
@click.option(
    "--output",
    "-o",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    help="Snapshot file to write (default: timestamped file in backup directory).",
)
@token_file_option
@click.pass_context
def export_command(
    ctx: click.Context, output: Optional[str], token_file: Optional[str]
) -> None:
    """
    Export all task lists and tasks to a snapshot file.

    Prompts for an access token, reads every list and every task of the
    account and writes them to a JSON snapshot.

    Examples:

        # Export to the backup directory
        todo-backup export

        # Export to a chosen file
        todo-backup export --output tasks.json
    """
    logger = get_logger(__name__)

    try:
        token = get_access_token(token_file)
        api = build_api(ctx, token)
        bm = get_backup_manager(ctx)

        click.echo("Exporting task lists...")
        exporter = Exporter(api, bm, on_list=show_list_progress)
        result = exporter.export(Path(output) if output else None)

        show_export_result(result)
        logger.info(f"Export written to {result.path}")

    except click.Abort:
        raise

    except EXPECTED_ERRORS as e:
        logger.error(f"Export failed: {e}")
        fail(str(e))

    except Exception as e:
        logger.exception(f"Export failed: {e}")
        fail(str(e))


# =============================================================================
# Import Command
# =============================================================================


@cli.command("import")
@click.argument(
    "snapshot_file", type=click.Path(exists=False, file_okay=True, dir_okay=False)
)
@token_file_option
@click.option(
    "--dry-run", "-n", is_flag=True, help="Show what would be imported and stop."
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def import_command(
    ctx: click.Context,
    snapshot_file: str,
    token_file: Optional[str],
    dry_run: bool,
    yes: bool,
) -> None:
    """
    Import a snapshot file into an account.

    Lists missing from the account (compared by name, ignoring case) are
    created, then every task is created in its list. Tasks are not
    de-duplicated, so importing the same snapshot twice creates every task
    twice. There is no rollback if the import stops part way.

    Examples:

        # Preview the import
        todo-backup import backup_20240120_103000.json --dry-run

        # Import without the confirmation prompt
        todo-backup import backup_20240120_103000.json --yes
    """
    logger = get_logger(__name__)

    try:
        bm = get_backup_manager(ctx)
        click.echo(f"Loading snapshot from {snapshot_file}...")
        snapshot = bm.load_snapshot(snapshot_file)

        token = get_access_token(token_file)
        api = build_api(ctx, token)
        importer = Importer(api, on_task=show_task_progress, on_plan=show_import_plan)

        result = importer.run(
            snapshot,
            confirm=lambda plan: yes or click.confirm("Continue?", default=False),
            dry_run=dry_run,
        )

        if result.dry_run:
            click.echo(
                click.style("Dry run complete. No changes were made.", fg="yellow")
            )
            return

        if result.cancelled:
            click.echo("Import cancelled. No changes were made.")
            return

        show_import_result(result)
        logger.info(f"Import completed from {snapshot_file}")

    except click.Abort:
        raise

    except EXPECTED_ERRORS as e:
        logger.error(f"Import failed: {e}")
        fail(str(e))

    except Exception as e:
        logger.exception(f"Import failed: {e}")
        fail(str(e))


# =============================================================================
# List-Backups Command
# =============================================================================


@cli.command("list-backups")
@click.pass_context
def list_backups_command(ctx: click.Context) -> None:
    """
    List snapshot files in the backup directory.

    Example:

        todo-backup list-backups
    """
    bm = get_backup_manager(ctx)
    backups = bm.list_backups()

    if not backups:
        click.echo("No backups found.")
        click.echo(f"Backup directory: {bm.backup_dir}")
        return

    show_backup_table(bm, backups)


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out.

    Examples:

        # Create config file (fails if already exists)
        todo-backup init-config

        # Overwrite existing config file
        todo-backup init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        click.echo("\nNext steps:")
        click.echo("1. Edit the file to uncomment and configure desired options")
        click.echo("2. Run 'todo-backup --help' to see available commands")
    else:
        logger.error(f"Failed to create configuration file: {error}")
        fail(str(error))
