"""CLI entry point for the issue labeler.

This module provides the Typer-based CLI with commands:
- labeler run: Handle the triggering workflow event
- labeler validate: Validate a local rules file

Every ``run`` option can also be given through the GitHub Actions
environment (``INPUT_*`` for action inputs, ``GITHUB_*`` for the run
context), so the same command works as the action's entry point.

Exit codes:
- 0: Success (failed label/comment calls are logged, not fatal)
- 1: Configuration error
- 2: Event error
- 4: Fatal error
"""

from __future__ import annotations

import asyncio
import json
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from labeler import __version__
from labeler.config import load_config
from labeler.config.loader import ConfigError
from labeler.config.schema import RunInputs
from labeler.github import GitHubClient, normalize_event
from labeler.github.auth import AuthenticationError, get_github_token
from labeler.github.client import DEFAULT_API_URL
from labeler.github.events import EventAdaptationError
from labeler.logging import configure_logging, get_logger, register_secret
from labeler.runner import run_event

if TYPE_CHECKING:
    from labeler.github.events import EventContext
    from labeler.runner import RunReport


class ExitCode(IntEnum):
    """CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    EVENT_ERROR = 2
    FATAL_ERROR = 4


app = typer.Typer(
    name="labeler",
    help="Issue Labeler - rule-driven labels and comments for GitHub issues and pull requests.",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"labeler {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Issue Labeler - rule-driven labels and comments."""


def _fail(message: str, code: ExitCode) -> typer.Exit:
    typer.echo(typer.style(f"✗ {message}", fg=typer.colors.RED), err=True)
    return typer.Exit(code)


@app.command()
def validate(
    config_file: Annotated[
        Path,
        typer.Argument(help="Path to the rules file."),
    ],
    sync_labels: Annotated[
        int,
        typer.Option(
            "--sync-labels",
            help="Default mode for rules without one: 1 adds and removes, 0 only adds.",
        ),
    ] = 0,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """Validate a rules file without running.

    Exits with code 0 if valid, or code 1 if there are errors.
    """
    configure_logging(verbose=verbose, json_output=False)

    if sync_labels not in (0, 1):
        raise _fail(
            f"found unexpected value of sync-labels ({sync_labels}, should be 0 or 1)",
            ExitCode.CONFIG_ERROR,
        )

    try:
        cfg = load_config(config_file, sync_labels=sync_labels)
    except ConfigError as e:
        raise _fail(str(e), ExitCode.CONFIG_ERROR) from e

    typer.echo(typer.style("✓ Configuration is valid", fg=typer.colors.GREEN))

    if verbose:
        typer.echo("\nConfiguration summary:")
        typer.echo(f"  Label rules: {len(cfg.labels)}")
        for rule in cfg.labels:
            typer.echo(f"    - {rule.name} -> {rule.content!r}")
        typer.echo(f"  Comment rules: {len(cfg.comments)}")
        for rule in cfg.comments:
            typer.echo(f"    - {rule.name} ({rule.type.value})")

    raise typer.Exit(ExitCode.SUCCESS)


@app.command("run")
def run(  # noqa: PLR0913
    config_path: Annotated[
        str,
        typer.Option(
            "--config-path",
            "-c",
            help="Path of the rules file in the repository.",
            envvar="INPUT_CONFIGURATION-PATH",
        ),
    ],
    repo_token: Annotated[
        str | None,
        typer.Option(
            "--repo-token",
            help="GitHub token (defaults to GITHUB_TOKEN).",
            envvar="INPUT_REPO-TOKEN",
            show_default=False,
        ),
    ] = None,
    not_before: Annotated[
        str | None,
        typer.Option(
            "--not-before",
            help="Ignore issues created before this ISO timestamp.",
            envvar="INPUT_NOT-BEFORE",
        ),
    ] = None,
    include_title: Annotated[
        int,
        typer.Option(
            "--include-title",
            help="1 to match label rules against title and body.",
            envvar="INPUT_INCLUDE-TITLE",
        ),
    ] = 0,
    sync_labels: Annotated[
        int,
        typer.Option(
            "--sync-labels",
            help="1 to remove labels whose rule no longer matches.",
            envvar="INPUT_SYNC-LABELS",
        ),
    ] = 0,
    event_name: Annotated[
        str,
        typer.Option(
            "--event-name",
            help="Triggering event name.",
            envvar="GITHUB_EVENT_NAME",
        ),
    ] = "",
    event_path: Annotated[
        Path | None,
        typer.Option(
            "--event-path",
            help="Path of the event payload JSON.",
            envvar="GITHUB_EVENT_PATH",
        ),
    ] = None,
    repository: Annotated[
        str,
        typer.Option(
            "--repository",
            help="Repository as owner/name.",
            envvar="GITHUB_REPOSITORY",
        ),
    ] = "",
    sha: Annotated[
        str | None,
        typer.Option(
            "--sha",
            help="Commit to read the rules file at.",
            envvar="GITHUB_SHA",
        ),
    ] = None,
    api_url: Annotated[
        str,
        typer.Option(
            "--api-url",
            help="GitHub API base URL.",
            envvar="GITHUB_API_URL",
        ),
    ] = DEFAULT_API_URL,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Log actions without executing them.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option(
            "--json-logs/--console-logs",
            help="Log as JSON or as human-readable console output.",
        ),
    ] = True,
) -> None:
    """Handle one workflow event: label, unlabel and comment per the rules file."""
    configure_logging(verbose=verbose, json_output=json_logs)
    log = get_logger("labeler.cli")

    try:
        inputs = RunInputs(
            configuration_path=config_path,
            repo_token=get_github_token(repo_token),
            not_before=not_before,
            include_title=include_title,
            sync_labels=sync_labels,
            dry_run=dry_run,
        )
    except (AuthenticationError, ValidationError) as e:
        raise _fail(f"Invalid inputs: {e}", ExitCode.CONFIG_ERROR) from e
    register_secret(inputs.repo_token)

    try:
        event = normalize_event(event_name, _read_payload(event_path))
    except EventAdaptationError as e:
        raise _fail(f"Event error: {e}", ExitCode.EVENT_ERROR) from e

    if not repository:
        raise _fail("No repository given (set GITHUB_REPOSITORY or --repository)", ExitCode.CONFIG_ERROR)

    log.info(
        "Handling event",
        event_type=event.event_type.value,
        issue_number=event.issue_number,
        repository=repository,
        dry_run=dry_run,
    )

    try:
        report = asyncio.run(_run(inputs, event, repository, api_url, sha))
    except ConfigError as e:
        raise _fail(f"Configuration error: {e}", ExitCode.CONFIG_ERROR) from e
    except EventAdaptationError as e:
        raise _fail(f"Event error: {e}", ExitCode.EVENT_ERROR) from e
    except Exception as e:
        log.exception("Run failed")
        raise _fail(f"Run failed: {e}", ExitCode.FATAL_ERROR) from e

    _print_report(report)
    raise typer.Exit(ExitCode.SUCCESS)


def _read_payload(event_path: Path | None) -> dict[str, Any]:
    """Read the webhook payload.

    Raises:
        EventAdaptationError: If the file is missing or not a JSON object.
    """
    if event_path is None:
        raise EventAdaptationError("no event payload given (set GITHUB_EVENT_PATH or --event-path)")
    try:
        payload = json.loads(event_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise EventAdaptationError(f"cannot read event payload {event_path}: {e}") from e
    if not isinstance(payload, dict):
        raise EventAdaptationError(f"event payload {event_path} is not a JSON object")
    return payload


async def _run(
    inputs: RunInputs,
    event: EventContext,
    repository: str,
    api_url: str,
    sha: str | None,
) -> RunReport:
    async with GitHubClient(inputs.repo_token, repository, base_url=api_url) as client:
        return await run_event(inputs, event, client, ref=sha)


def _print_report(report: RunReport) -> None:
    """Print a short human-readable summary of a run."""
    typer.echo()
    typer.echo(typer.style(f"Run {report.disposition}", bold=True))
    if report.labels.add or report.labels.remove:
        typer.echo(f"  Labels to add: {report.labels.add}")
        typer.echo(f"  Labels to remove: {report.labels.remove}")
    typer.echo(f"  Actions planned: {len(report.planned)}")
    if report.failures:
        typer.echo(
            typer.style(f"  Failed actions: {len(report.failures)}", fg=typer.colors.YELLOW)
        )
