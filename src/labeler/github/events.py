"""GitHub event models and payload normalization.

The workflow runner hands us an event name and the webhook payload. This
module turns them into an ``EventContext``, the fixed shape the rule engine
and the runner work with.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Commit message references such as "Fix #12" or "close https://x/issues/34"
FIXED_ISSUE_PATTERN = re.compile(r"(?i:fix|close)\s+(?:#|.*/issues/)(\d+)")

# Push events never carry these, so not-before never filters them
PUSH_CREATED_AT = "1970-01-01T00:00:00Z"


class EventType(str, Enum):
    """Workflow events the labeler can handle."""

    PULL_REQUEST = "pull_request"
    PULL_REQUEST_TARGET = "pull_request_target"
    ISSUES = "issues"
    ISSUE_COMMENT = "issue_comment"
    PUSH = "push"


class EventAdaptationError(Exception):
    """Raised when an event cannot be turned into an EventContext."""

    def __init__(self, message: str, *, event_name: str | None = None) -> None:
        """Initialize event adaptation error.

        Args:
            message: Error description.
            event_name: Raw event name, if known.
        """
        super().__init__(message)
        self.event_name = event_name


class EventContext(BaseModel):
    """Normalized triggering event.

    For push events ``issue_numbers`` holds every issue referenced by a
    fixing commit and ``issue_number`` is None. For all other events
    ``issue_number`` is the issue or pull request being processed.
    """

    model_config = ConfigDict(frozen=True)

    event_type: EventType = Field(..., description="Triggering event")
    issue_number: int | None = Field(default=None, description="Issue or PR number")
    issue_numbers: list[int] = Field(
        default_factory=list,
        description="Issues fixed by a push",
    )
    title: str = Field(default="", description="Issue or PR title")
    body: str = Field(default="", description="Issue, PR or comment body")
    author_association: str = Field(
        default="",
        description="Author relationship to the repository (e.g. COLLABORATOR)",
    )
    created_at: str = Field(default="", description="Creation timestamp text")
    comment_id: int | None = Field(
        default=None,
        description="Triggering comment ID (issue_comment only)",
    )

    @property
    def is_push(self) -> bool:
        """Check if this is a push event."""
        return self.event_type == EventType.PUSH

    def content(self, *, include_title: bool = False) -> str:
        """Text the label rules are matched against."""
        if include_title:
            return f"{self.title}\n\n{self.body}"
        return self.body

    def created_at_datetime(self) -> datetime:
        """Parse ``created_at``.

        Raises:
            EventAdaptationError: If the timestamp is missing or malformed.
        """
        try:
            return datetime.fromisoformat(self.created_at.replace("Z", "+00:00"))
        except ValueError as e:
            raise EventAdaptationError(
                f"cannot deduce `createdAt` from {self.created_at!r}",
                event_name=self.event_type.value,
            ) from e


def parse_event_type(event_name: str) -> EventType:
    """Map a workflow event name to an EventType.

    Raises:
        EventAdaptationError: For events the labeler does not handle.
    """
    try:
        return EventType(event_name)
    except ValueError:
        raise EventAdaptationError(
            f"could not handle event `{event_name}`",
            event_name=event_name,
        ) from None


def extract_fixed_issues(messages: str) -> list[int]:
    """Find the issue numbers a set of commit messages claims to fix.

    Args:
        messages: Commit messages, concatenated.

    Returns:
        Issue numbers in order of appearance.

    Example:
        >>> extract_fixed_issues("Fix #12\\n\\nClose https://x/issues/34\\n\\n")
        [12, 34]
    """
    return [int(match.group(1)) for match in FIXED_ISSUE_PATTERN.finditer(messages)]


def _entity_fields(entity: dict[str, Any]) -> dict[str, Any]:
    """Common fields of an issue, pull request or comment payload."""
    return {
        "issue_number": entity.get("number"),
        "title": entity.get("title") or "",
        "body": entity.get("body") or "",
        "created_at": entity.get("created_at") or "",
        "author_association": entity.get("author_association") or "",
    }


def normalize_event(event_name: str, payload: dict[str, Any]) -> EventContext:
    """Normalize a webhook payload to an EventContext.

    Args:
        event_name: Workflow event name (GITHUB_EVENT_NAME).
        payload: Webhook payload (contents of GITHUB_EVENT_PATH).

    Returns:
        Normalized EventContext.

    Raises:
        EventAdaptationError: If the event is unknown or the payload lacks
            the pieces the event type needs.
    """
    event_type = parse_event_type(event_name)

    if event_type == EventType.PUSH:
        commits = payload.get("commits")
        if not isinstance(commits, list):
            raise EventAdaptationError(
                "could not get push event details from payload (no commits)",
                event_name=event_name,
            )
        messages = "".join(f"{commit.get('message', '')}\n\n" for commit in commits)
        return EventContext(
            event_type=event_type,
            issue_numbers=extract_fixed_issues(messages),
            body=messages,
            created_at=PUSH_CREATED_AT,
        )

    if event_type == EventType.ISSUES:
        fields = _entity_fields(_section(payload, "issue", event_name))
    elif event_type in (EventType.PULL_REQUEST, EventType.PULL_REQUEST_TARGET):
        fields = _entity_fields(_section(payload, "pull_request", event_name))
    else:
        comment = _section(payload, "comment", event_name)
        issue = _section(payload, "issue", event_name)
        fields = _entity_fields(comment)
        fields["issue_number"] = issue.get("number")
        fields["title"] = issue.get("title") or ""
        fields["comment_id"] = comment.get("id")

    issue_number = fields["issue_number"]
    if isinstance(issue_number, list) or not isinstance(issue_number, int):
        raise EventAdaptationError(
            f"expected a single issue number for `{event_name}`, got {issue_number!r}",
            event_name=event_name,
        )

    return EventContext(event_type=event_type, **fields)


def _section(payload: dict[str, Any], key: str, event_name: str) -> dict[str, Any]:
    section = payload.get(key)
    if not isinstance(section, dict):
        raise EventAdaptationError(
            f"could not get {key.replace('_', ' ')} from payload",
            event_name=event_name,
        )
    return section
