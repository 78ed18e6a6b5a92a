"""
Entry point for running todo_backup as a module.

Usage:
    python -m todo_backup --help
    python -m todo_backup export
    python -m todo_backup import backup_20240120_103000.json
"""

from todo_backup.cli import cli

if __name__ == "__main__":
    cli()
