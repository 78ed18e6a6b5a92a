"""
todo_backup.sync - Export and import operations

Contains the exporter that snapshots an account and the importer that
restores a snapshot into an account.
"""

from todo_backup.sync.exporter import Exporter, ExportResult
from todo_backup.sync.importer import (
    Importer,
    ImportPlan,
    ImportResult,
    ListResolutionError,
    find_list_by_name,
    missing_list_names,
)

__all__ = [
    "ExportResult",
    "Exporter",
    "ImportPlan",
    "ImportResult",
    "Importer",
    "ListResolutionError",
    "find_list_by_name",
    "missing_list_names",
]
