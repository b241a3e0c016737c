"""Structured logging and the per-run audit trail.

Log output goes to stderr so it lands in the workflow log next to the
step output. Everything passing through structlog is redacted first: the
repository token of the run is registered with ``register_secret`` and
known GitHub credential shapes are masked wherever they appear.

Audit events:
- ``event_received``: the normalized trigger
- ``decision``: labels and comments the rules produced for one issue
- ``action_taken``: the outcome of each backend call
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import EventDict, WrappedLogger

GITHUB_TOKEN_MASK = "[REDACTED_GITHUB_TOKEN]"
MASK = "[REDACTED]"

# Credential shapes masked even when they were never registered
CREDENTIAL_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Classic (ghp_, gho_, ghu_, ghs_, ghr_) and fine-grained tokens
    (re.compile(r"\bgh[pousr]_[A-Za-z0-9_]{36,}|\bgithub_pat_[A-Za-z0-9_]{22,}"), GITHUB_TOKEN_MASK),
    (re.compile(r"(authorization[=:]\s*['\"]?)[^\s'\"]+(?:\s+[^\s'\"]+)?", re.IGNORECASE), rf"\1{MASK}"),
    (re.compile(r"(bearer\s+)[A-Za-z0-9._-]+", re.IGNORECASE), rf"\1{MASK}"),
    (re.compile(r"((?:token|secret)[=:]\s*['\"]?)[A-Za-z0-9_-]{20,}", re.IGNORECASE), rf"\1{MASK}"),
]

_registered_secrets: set[str] = set()


def register_secret(secret: str) -> None:
    """Mask every later occurrence of a literal value in log output.

    Args:
        secret: Value to hide (e.g. the run's repository token). Blank
            values are ignored.
    """
    if secret.strip():
        _registered_secrets.add(secret)


def redact_secrets(value: Any) -> Any:
    """Mask credentials in a log value.

    Strings are scanned for registered secrets and credential shapes;
    mappings, lists and tuples are redacted item by item.

    Args:
        value: Value to redact.

    Returns:
        Redacted copy of the value (other types are returned as is).
    """
    if isinstance(value, str):
        for secret in _registered_secrets:
            value = value.replace(secret, MASK)
        for pattern, replacement in CREDENTIAL_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return {key: redact_secrets(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return type(value)(redact_secrets(item) for item in value)
    return value


def _redact_processor(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    return redact_secrets(event_dict)


def _renderer(json_output: bool) -> Callable[..., Any]:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    verbose: bool = False,
    json_output: bool = True,
) -> None:
    """Configure logging for a CLI invocation.

    structlog renders the audit events; library modules log through the
    standard ``logging`` module at the same level.

    Args:
        verbose: If True, enable DEBUG level. Otherwise INFO.
        json_output: If True, output JSON. Otherwise use console format.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _redact_processor,
            _renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger."""
    return structlog.get_logger(name)


def log_event_received(
    event_type: str,
    issue_numbers: list[int],
    author_association: str,
) -> None:
    """Log the normalized triggering event."""
    get_logger("labeler.events").debug(
        "event_received",
        event_type=event_type,
        issue_numbers=issue_numbers,
        author_association=author_association,
    )


def log_decision(
    event_type: str,
    issue_number: int | None,
    labels_added: list[str],
    labels_removed: list[str],
    comments_added: int,
    bodies_updated: int,
    disposition: str,
) -> None:
    """Log what the rules decided for one event.

    Args:
        event_type: Workflow event name
        issue_number: Issue or PR acted on (None for push)
        labels_added: Labels the label pass adds
        labels_removed: Labels the label pass removes
        comments_added: Number of new comments
        bodies_updated: Number of comment/issue body updates
        disposition: How the run ended ('completed', 'push' or 'not_before')
    """
    get_logger("labeler.audit").info(
        "decision",
        event_type=event_type,
        issue_number=issue_number,
        labels_added=labels_added,
        labels_removed=labels_removed,
        comments_added=comments_added,
        bodies_updated=bodies_updated,
        disposition=disposition,
    )


def log_action_taken(
    action_type: str,
    target: int,
    result: str,
    error: str | None = None,
) -> None:
    """Log the outcome of one backend action.

    Failures are logged at WARNING, everything else at INFO.

    Args:
        action_type: Type of action (e.g., 'add_labels')
        target: Issue number or comment ID
        result: Result status ('success', 'failure', 'dry_run')
        error: Error message if failed
    """
    log = get_logger("labeler.actions")
    emit = log.warning if result == "failure" else log.info
    emit("action_taken", action_type=action_type, target=target, result=result, error=error)
