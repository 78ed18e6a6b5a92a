"""CLI package for todo_backup."""

from todo_backup.cli.main import (
    cli,
    get_access_token,
    get_config_dir,
    get_config_file,
)
from todo_backup.utils import DEFAULT_CONFIG_DIR

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "cli",
    "get_access_token",
    "get_config_dir",
    "get_config_file",
]
