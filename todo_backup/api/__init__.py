"""
todo_backup.api - Task API client module

Wraps the REST endpoints used for backup and restore.
"""

from todo_backup.api.todo_api import (
    AuthenticationError,
    TodoAPI,
    TodoAPIError,
    TransientAPIError,
)

__all__ = ["AuthenticationError", "TodoAPI", "TodoAPIError", "TransientAPIError"]
