"""
todo_backup.auth - Credential input module

Reads the bearer token used for API calls.
"""

from todo_backup.auth.token import (
    TokenError,
    normalize_token,
    prompt_for_token,
    read_token_file,
)

__all__ = ["TokenError", "normalize_token", "prompt_for_token", "read_token_file"]
