"""
todo_backup.config - Configuration management module

Contains configuration loading, validation, and session settings.
"""

from todo_backup.config.loader import ConfigError, ConfigLoader
from todo_backup.config.settings import ApiSettings, Session

__all__ = [
    "ApiSettings",
    "ConfigError",
    "ConfigLoader",
    "Session",
]
