"""
Location of the todo-backup configuration directory.

The directory holds config.yaml and, unless configured otherwise, the
backups/ and logs/ subdirectories.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CONFIG_DIR = Path.home() / ".todo-backup"

CONFIG_DIR_ENV_VAR = "TODO_BACKUP_CONFIG_DIR"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Absolute configuration directory.

    An explicit config_dir wins, then $TODO_BACKUP_CONFIG_DIR, then
    ~/.todo-backup. "~" is expanded in all three.
    """
    if config_dir is None:
        config_dir = os.environ.get(CONFIG_DIR_ENV_VAR) or DEFAULT_CONFIG_DIR
    return Path(config_dir).expanduser().resolve()
