"""GitHub API client and event normalization."""

from labeler.github.auth import AuthenticationError, get_github_token, mask_token
from labeler.github.client import DEFAULT_API_URL, GitHubAPIError, GitHubClient
from labeler.github.events import (
    EventAdaptationError,
    EventContext,
    EventType,
    extract_fixed_issues,
    normalize_event,
    parse_event_type,
)

__all__ = [
    "DEFAULT_API_URL",
    "AuthenticationError",
    "EventAdaptationError",
    "EventContext",
    "EventType",
    "GitHubAPIError",
    "GitHubClient",
    "extract_fixed_issues",
    "get_github_token",
    "mask_token",
    "normalize_event",
    "parse_event_type",
]
