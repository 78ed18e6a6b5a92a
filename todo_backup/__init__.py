"""
todo_backup - Back up and restore Microsoft To Do task lists.

Exports every task list and task of an account to a JSON snapshot and
restores a snapshot into the same or a different account.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
