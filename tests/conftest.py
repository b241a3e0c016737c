"""Shared pytest fixtures for labeler tests.

This module provides common fixtures for:
- Temporary rules files
- Parsed rule configurations
- Normalized events and raw webhook payloads
- A fake GitHub API served through httpx.MockTransport
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import pytest
import pytest_asyncio
import yaml

from labeler.config import parse_rule_config
from labeler.github.client import GitHubClient
from labeler.github.events import EventContext, EventType

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path

    from labeler.config import RuleConfig

REPOSITORY = "octocat/hello-world"


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_rules() -> dict[str, Any]:
    """Return a rules file with label and comment rules."""
    return {
        "labels": [
            {"name": "bug", "regexes": "/\\bbug\\b/i"},
            {"name": "question", "regexes": "\\?", "skip-if": "bug"},
            {"name": "docs", "regexes": ["docs?", "readme"], "mode": "pull_request"},
        ],
        "comments": [
            {
                "name": "thanks",
                "content": "Thanks @${body}",
                "author_association": "NONE",
                "mode": "issues",
            },
        ],
    }


@pytest.fixture
def make_config() -> Callable[..., RuleConfig]:
    """Factory fixture to validate a rules dict.

    Args:
        raw: Rules file contents
        sync_labels: Default mode selector (0 or 1)
    """

    def _make(raw: dict[str, Any], sync_labels: int = 0) -> RuleConfig:
        return parse_rule_config(raw, sync_labels=sync_labels)

    return _make


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture to write rules files.

    Args:
        config: Rules dictionary
        filename: Name of the file (default: labeler.yml)

    Returns:
        Path to the written file
    """

    def _write(config: dict[str, Any], filename: str = "labeler.yml") -> Path:
        path = tmp_path / filename
        with path.open("w") as f:
            yaml.safe_dump(config, f)
        return path

    return _write


# ============================================================================
# Event Fixtures
# ============================================================================


@pytest.fixture
def issue_event() -> EventContext:
    """Return a normalized `issues` event for issue #42."""
    return EventContext(
        event_type=EventType.ISSUES,
        issue_number=42,
        title="Crash on start",
        body="There is a Bug when I start the app",
        author_association="NONE",
        created_at="2026-01-09T10:00:00Z",
    )


@pytest.fixture
def issue_payload() -> dict[str, Any]:
    """Return a sample `issues` webhook payload."""
    return {
        "action": "opened",
        "issue": {
            "number": 42,
            "title": "Crash on start",
            "body": "There is a Bug when I start the app",
            "author_association": "NONE",
            "created_at": "2026-01-09T10:00:00Z",
        },
        "repository": {"full_name": REPOSITORY},
    }


@pytest.fixture
def comment_payload() -> dict[str, Any]:
    """Return a sample `issue_comment` webhook payload."""
    return {
        "action": "created",
        "issue": {
            "number": 7,
            "title": "Feature request",
            "body": "Please add dark mode",
            "created_at": "2026-01-01T00:00:00Z",
        },
        "comment": {
            "id": 987654,
            "body": "+1, see https://bit.ly/xyz",
            "author_association": "CONTRIBUTOR",
            "created_at": "2026-01-10T15:30:00Z",
        },
    }


@pytest.fixture
def push_payload() -> dict[str, Any]:
    """Return a sample `push` webhook payload."""
    return {
        "ref": "refs/heads/main",
        "commits": [
            {"id": "a1", "message": "Fix #12 crash on start"},
            {"id": "b2", "message": "refactor"},
            {"id": "c3", "message": "close https://github.com/octocat/hello-world/issues/34"},
        ],
    }


# ============================================================================
# GitHub API Fixtures
# ============================================================================


@dataclass
class FakeGitHub:
    """In-memory stand-in for the GitHub REST API.

    Records every request and answers the endpoints the labeler uses.
    Set ``fail`` to a path fragment to make matching requests return 500.
    """

    rules: dict[str, Any] = field(default_factory=dict)
    labels: dict[int, set[str]] = field(default_factory=dict)
    html: str = ""
    fail: str | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def calls(self, method: str, fragment: str = "") -> list[httpx.Request]:
        """Get recorded requests by method and path fragment."""
        return [
            r for r in self.requests if r.method == method and fragment in r.url.path
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:  # noqa: PLR0911
        self.requests.append(request)
        path = request.url.path
        prefix = f"/repos/{REPOSITORY}"

        if self.fail and self.fail in path:
            return httpx.Response(500, json={"message": "Server Error"})

        if request.method == "POST" and path == "/markdown":
            return httpx.Response(200, text=self.html)

        if request.method == "GET" and path.startswith(f"{prefix}/contents/"):
            content = base64.b64encode(yaml.safe_dump(self.rules).encode()).decode()
            return httpx.Response(200, json={"type": "file", "encoding": "base64", "content": content})

        if path.startswith(f"{prefix}/issues/") and "/labels" in path:
            number = int(path.split("/")[5])
            current = self.labels.setdefault(number, set())
            if request.method == "GET":
                return httpx.Response(200, json=[{"name": name} for name in sorted(current)])
            if request.method == "POST":
                current.update(json.loads(request.content)["labels"])
                return httpx.Response(200, json=[{"name": name} for name in sorted(current)])
            if request.method == "DELETE":
                name = path.split("/labels/", 1)[1]
                current.discard(name)
                return httpx.Response(200, json=[])

        if request.method in ("POST", "PATCH") and path.startswith(f"{prefix}/issues"):
            return httpx.Response(201 if request.method == "POST" else 200, json={"id": 1})

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Return an empty fake GitHub API."""
    return FakeGitHub()


@pytest_asyncio.fixture
async def github_client(fake_github: FakeGitHub) -> AsyncGenerator[GitHubClient, None]:
    """Create a GitHubClient talking to the fake API.

    Yields:
        Client bound to octocat/hello-world (closed after test)
    """
    client = GitHubClient(
        "ghp_" + "x" * 36,
        REPOSITORY,
        transport=httpx.MockTransport(fake_github.handler),
    )
    async with client:
        yield client
