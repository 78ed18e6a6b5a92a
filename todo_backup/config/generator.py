"""
Configuration file generator for todo-backup.

Generates a default configuration file documenting every available option.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Every option is commented out, so the generated file loads as an
    empty configuration until the user edits it.

    Returns:
        String containing YAML configuration with comments
    """
    return """# To Do Backup Configuration
# ==========================
#
# This file sets default options for todo-backup.
# CLI arguments will always override these values.
#
# To use this configuration:
#   1. Save as ~/.todo-backup/config.yaml (or custom location)
#   2. Uncomment and modify options as needed
#   3. Run todo-backup commands normally

# Logging Options
# ---------------

# Enable verbose output with detailed logging
# Default: false
# verbose: true

# Directory for daily log files
# Default: ~/.todo-backup/logs
# log_dir: /path/to/logs

# Number of daily log files to keep (0 keeps all)
# Default: 10
# log_retention_count: 10


# API Options
# -----------

# Base URL of the task API
# Default: https://graph.microsoft.com/v1.0
# base_url: https://graph.microsoft.com/v1.0

# Path of the signed-in identity, relative to base_url
# Default: me
# identity_path: me

# Path of the task account, relative to base_url.
# Lists live under <account_path>/lists
# Default: me/todo
# account_path: me/todo

# Timeout for each HTTP request, in seconds
# Default: 30
# request_timeout: 30

# Extra attempts for task creation after a transient failure
# (rate limiting, server errors, dropped connections)
# Default: 2
# task_create_retries: 2

# Fixed delay between task creation attempts, in seconds
# Default: 5
# task_create_retry_delay: 5


# Backup Options
# --------------

# Directory where export writes snapshot files
# Default: ~/.todo-backup/backups
# backup_dir: /path/to/backups

# Number of snapshots to keep in backup_dir (0 keeps all)
# Default: 10
# backup_retention_count: 10
"""


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save default configuration file to specified path.

    Creates parent directories if they don't exist and saves
    the configuration with owner-only permissions.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message)
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)
