"""
YAML configuration file for todo-backup.

The file is optional. A missing or empty file means "use the defaults";
a file that exists but is not a YAML mapping is an error. Command-line
options always take precedence over file values.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from todo_backup.utils.paths import CONFIG_DIR_ENV_VAR, DEFAULT_CONFIG_DIR

DEFAULT_CONFIG_FILE = "config.yaml"

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""

    pass


# Recognized keys and the types their values may have
VALID_KEYS: dict[str, type[Any] | tuple[type[Any], ...]] = {
    "verbose": bool,
    "base_url": str,
    "identity_path": str,
    "account_path": str,
    "request_timeout": (int, float),
    "task_create_retries": int,
    "task_create_retry_delay": (int, float),
    "backup_dir": str,
    "backup_retention_count": int,
    "log_dir": str,
    "log_retention_count": int,
}

# Durations that must be strictly positive
POSITIVE_KEYS = ("request_timeout", "task_create_retry_delay")

# Counts where 0 is meaningful (no retries, keep everything)
NON_NEGATIVE_KEYS = (
    "task_create_retries",
    "backup_retention_count",
    "log_retention_count",
)


def _type_name(expected: type[Any] | tuple[type[Any], ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _has_type(value: Any, expected: type[Any] | tuple[type[Any], ...]) -> bool:
    # YAML true/false must not pass as a number
    if isinstance(value, bool):
        return expected is bool
    return isinstance(value, expected)


class ConfigLoader:
    """
    Reads and checks the YAML configuration file.

    Usage:
        loader = ConfigLoader(config_dir=Path("~/.todo-backup").expanduser())
        config = loader.load_and_validate()
        settings = ApiSettings.from_config(config)
    """

    def __init__(
        self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Args:
            config_dir: Directory holding the file. Falls back to
                $TODO_BACKUP_CONFIG_DIR, then ~/.todo-backup.
            config_file: File name inside config_dir
        """
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
            config_dir = Path(env_dir) if env_dir else DEFAULT_CONFIG_DIR
        self.config_dir = Path(config_dir)
        self.config_file = config_file

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """Load the file in config_dir. See load_from_file()."""
        return self.load_from_file(self.config_path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Parse a configuration file.

        Returns:
            The file's mapping, or {} when the file is missing or empty

        Raises:
            ConfigError: If the file cannot be read, is not valid YAML or
                does not hold a mapping
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No configuration file at {path}, using defaults")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                "Configuration file must contain a YAML dictionary, "
                f"got {type(data).__name__}"
            )

        logger.debug(f"Loaded {len(data)} configuration values from {path}")
        return data

    def validate(self, config: dict[str, Any]) -> None:
        """
        Check value types and ranges of the recognized keys.

        Unrecognized keys are ignored.

        Raises:
            ConfigError: On the first invalid value
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        for key, value in config.items():
            expected = VALID_KEYS.get(key)
            if expected is not None and not _has_type(value, expected):
                raise ConfigError(
                    f"Invalid type for '{key}': expected {_type_name(expected)}, "
                    f"got {type(value).__name__}"
                )

        base_url = config.get("base_url")
        if base_url is not None and not base_url.startswith(("http://", "https://")):
            raise ConfigError(
                f"base_url must start with http:// or https://, got {base_url!r}"
            )

        for key in POSITIVE_KEYS:
            if key in config and config[key] <= 0:
                raise ConfigError(f"{key} must be > 0, got {config[key]}")

        for key in NON_NEGATIVE_KEYS:
            if key in config and config[key] < 0:
                raise ConfigError(f"{key} must be >= 0, got {config[key]}")

    def load_and_validate(self) -> dict[str, Any]:
        """Load the file in config_dir and validate it."""
        config = self.load()
        if config:
            self.validate(config)
        return config
