"""GitHub token resolution and masking."""

from __future__ import annotations

import os


class AuthenticationError(Exception):
    """Raised when no usable GitHub token is available."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialize authentication error.

        Args:
            message: Error description.
            status_code: HTTP status code if from API response.
        """
        super().__init__(message)
        self.status_code = status_code


def get_github_token(explicit: str | None = None) -> str:
    """Resolve the GitHub token for this run.

    Args:
        explicit: Token from the ``repo-token`` input, if given.

    Returns:
        GitHub token.

    Raises:
        AuthenticationError: If neither the input nor GITHUB_TOKEN is set.
    """
    token = (explicit or "").strip() or os.environ.get("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "No GitHub token given. Pass `repo-token` "
            "or set the GITHUB_TOKEN environment variable."
        )
    return token


def mask_token(token: str) -> str:
    """Mask a token for safe logging.

    Args:
        token: Token to mask.

    Returns:
        Masked token showing first 4 and last 4 characters.
    """
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"
