"""Logging module for the issue labeler.

This module provides structured logging with:
- structlog configuration for consistent log formatting
- Secret redaction for the run token and GitHub credentials
- Audit logging for decision trails

Usage:
    from labeler.logging import configure_logging, log_decision

    configure_logging(verbose=True)
    log_decision(event_type, issue_number, added, removed, 0, 0, disposition)
"""

from labeler.logging.audit import (
    configure_logging,
    get_logger,
    log_action_taken,
    log_decision,
    log_event_received,
    redact_secrets,
    register_secret,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_action_taken",
    "log_decision",
    "log_event_received",
    "redact_secrets",
    "register_secret",
]
