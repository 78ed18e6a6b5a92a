"""
Bearer token input for the task API.

The token is obtained outside this tool (for example from Graph Explorer)
and entered at a masked prompt or read from a file. There is no refresh:
an expired token fails the first API call.
"""

import logging
from pathlib import Path

import click

BEARER_SCHEME = "bearer"

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Raised when no usable access token was supplied."""

    pass


def normalize_token(value: str | None) -> str:
    """
    Clean up a pasted token.

    Strips surrounding whitespace and a leading "Bearer " prefix.

    Raises:
        TokenError: If nothing is left
    """
    token = (value or "").strip()
    scheme, _, rest = token.partition(" ")
    if scheme.lower() == BEARER_SCHEME:
        token = rest.strip()
    if not token:
        raise TokenError("Access token is empty")
    return token


def prompt_for_token(prompt: str = "Access token") -> str:
    """
    Ask for a bearer token without echoing it.

    Args:
        prompt: Prompt text shown to the user

    Returns:
        The normalized token

    Raises:
        TokenError: If the entered token is empty
    """
    value = click.prompt(prompt, hide_input=True, default="", show_default=False)
    token = normalize_token(value)
    logger.debug("Access token read from prompt")
    return token


def read_token_file(path: Path | str) -> str:
    """
    Read a bearer token from a file.

    Raises:
        TokenError: If the file is missing, unreadable or empty
    """
    path = Path(path).expanduser()
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise TokenError(f"Token file not found: {path}") from e
    except OSError as e:
        raise TokenError(f"Failed to read token file {path}: {e}") from e

    try:
        token = normalize_token(content)
    except TokenError as e:
        raise TokenError(f"Token file is empty: {path}") from e
    logger.debug(f"Access token read from {path}")
    return token
