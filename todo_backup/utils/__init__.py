"""
todo_backup.utils - Utility module

Common utilities including path resolution and logging configuration.
"""

from todo_backup.utils.paths import DEFAULT_CONFIG_DIR, resolve_config_dir

__all__ = ["resolve_config_dir", "DEFAULT_CONFIG_DIR"]
