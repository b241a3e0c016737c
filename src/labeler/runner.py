"""One labeler run: from a normalized event to executed actions.

The run is a straight line:
1. push events label every referenced issue ``fixed`` and stop
2. the not-before gate may stop the run early
3. the rules file is fetched at the triggering commit and validated
4. the label pass and the comment pass decide what to change
5. the changes are planned, then executed with failure isolation

Configuration and event errors raise before any mutating call is made.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from labeler.actions.executor import ActionExecutor, ActionResult, ActionType, PlannedAction
from labeler.config.loader import (
    ConfigError,
    decode_config_content,
    load_yaml_text,
    parse_rule_config,
)
from labeler.github.client import GitHubAPIError
from labeler.github.events import EventAdaptationError, EventType
from labeler.logging.audit import log_action_taken, log_decision, log_event_received
from labeler.rules.engine import RulesEngine
from labeler.rules.links import LinkExtractor
from labeler.rules.schema import CommentAnalysis, LabelAnalysis

if TYPE_CHECKING:
    from labeler.config.schema import RuleConfig, RunInputs
    from labeler.github.client import GitHubClient
    from labeler.github.events import EventContext

logger = logging.getLogger(__name__)

FIXED_LABEL = "fixed"


class RunReport(BaseModel):
    """Outcome of a run."""

    model_config = ConfigDict(frozen=True)

    disposition: str = Field(..., description="'completed', 'push' or 'not_before'")
    labels: LabelAnalysis = Field(default_factory=LabelAnalysis)
    comments: CommentAnalysis = Field(default_factory=CommentAnalysis)
    planned: list[PlannedAction] = Field(default_factory=list)
    results: list[ActionResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[ActionResult]:
        """Get the actions that failed."""
        return [result for result in self.results if result.is_failure]


def plan_actions(
    event: EventContext,
    labels: LabelAnalysis,
    comments: CommentAnalysis,
    *,
    current_labels: set[str],
    sync_labels: bool,
) -> list[PlannedAction]:
    """Turn analysis results into backend actions.

    Args:
        event: Triggering event (not a push).
        labels: Label pass result.
        comments: Comment pass result.
        current_labels: Labels already on the issue.
        sync_labels: Whether removal is enabled for this run.

    Returns:
        Actions in execution order: add labels, remove labels, new
        comments, body updates.

    Raises:
        EventAdaptationError: If the event names no issue, or an update
            targets an issue_comment event without a comment ID.
    """
    issue = event.issue_number
    if issue is None:
        raise EventAdaptationError("no issue number to act on", event_name=event.event_type.value)
    actions: list[PlannedAction] = []

    to_add = [label for label in labels.add if label not in current_labels]
    if to_add:
        actions.append(PlannedAction(action_type=ActionType.ADD_LABELS, target=issue, labels=to_add))

    if sync_labels:
        actions.extend(
            PlannedAction(action_type=ActionType.REMOVE_LABEL, target=issue, label=label)
            for label in labels.remove
            if label in current_labels
        )

    actions.extend(
        PlannedAction(action_type=ActionType.CREATE_COMMENT, target=issue, body=body)
        for body in comments.add
    )

    if comments.update:
        if event.event_type == EventType.ISSUE_COMMENT:
            if event.comment_id is None:
                raise EventAdaptationError(
                    "cannot update the triggering comment: no comment id in payload",
                    event_name=event.event_type.value,
                )
            actions.extend(
                PlannedAction(action_type=ActionType.UPDATE_COMMENT, target=event.comment_id, body=body)
                for body in comments.update
            )
        else:
            actions.extend(
                PlannedAction(action_type=ActionType.UPDATE_ISSUE, target=issue, body=body)
                for body in comments.update
            )

    return actions


async def _execute(executor: ActionExecutor, actions: list[PlannedAction]) -> list[ActionResult]:
    results = await executor.execute_all(actions)
    for result in results:
        log_action_taken(
            result.action.action_type.value,
            result.action.target,
            result.status.value,
            error=result.message if result.is_failure else None,
        )
    return results


async def fetch_rule_config(
    client: GitHubClient,
    path: str,
    *,
    ref: str | None,
    sync_labels: int,
) -> RuleConfig:
    """Fetch and validate the rules file from the repository.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    try:
        data = await client.get_file_content(path, ref)
    except GitHubAPIError as e:
        raise ConfigError(f"cannot fetch configuration `{path}`: {e}", path) from e
    text = decode_config_content(data, path)
    return parse_rule_config(load_yaml_text(text, path), sync_labels=sync_labels, path=path)


async def run_event(
    inputs: RunInputs,
    event: EventContext,
    client: GitHubClient,
    *,
    ref: str | None = None,
) -> RunReport:
    """Run the labeler for one event.

    Args:
        inputs: Run inputs.
        event: Normalized triggering event.
        client: Client bound to the event's repository.
        ref: Commit to read the rules file at.

    Returns:
        RunReport with analysis, planned actions and their results.

    Raises:
        ConfigError: If the rules file cannot be loaded.
        EventAdaptationError: If the event lacks what the run needs.
    """
    executor = ActionExecutor(client, dry_run=inputs.dry_run)
    log_event_received(
        event.event_type.value,
        event.issue_numbers if event.is_push else [event.issue_number or 0],
        event.author_association,
    )

    if event.is_push:
        planned = [
            PlannedAction(action_type=ActionType.ADD_LABELS, target=number, labels=[FIXED_LABEL])
            for number in dict.fromkeys(event.issue_numbers)
        ]
        if not planned:
            logger.info("Push references no fixed issues")
        results = await _execute(executor, planned)
        log_decision(event.event_type.value, None, [FIXED_LABEL] if planned else [], [], 0, 0, "push")
        return RunReport(disposition="push", planned=planned, results=results)

    if inputs.not_before is not None:
        created_at = event.created_at_datetime()
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=inputs.not_before.tzinfo)
        if created_at < inputs.not_before:
            logger.info(
                "Issue #%s created at %s is before not-before %s, skipping",
                event.issue_number,
                created_at.isoformat(),
                inputs.not_before.isoformat(),
            )
            log_decision(event.event_type.value, event.issue_number, [], [], 0, 0, "not_before")
            return RunReport(disposition="not_before")

    config = await fetch_rule_config(
        client,
        inputs.configuration_path,
        ref=ref,
        sync_labels=inputs.sync_labels,
    )

    issue = event.issue_number
    if issue is None:
        raise EventAdaptationError("no issue number to act on", event_name=event.event_type.value)
    try:
        current_labels = await client.list_labels(issue)
    except GitHubAPIError as e:
        logger.warning("Cannot list labels of #%s: %s", issue, e)
        current_labels = set()

    content = event.content(include_title=inputs.include_title == 1)
    label_engine = RulesEngine(
        content,
        event.author_association,
        event.event_type,
    )
    labels = label_engine.analyze_labels(config.labels)

    comment_engine = RulesEngine(
        content,
        event.author_association,
        event.event_type,
        body=event.body,
        links=LinkExtractor(client.render_markdown),
    )
    comments = await comment_engine.analyze_comments(config.comments)

    planned = plan_actions(
        event,
        labels,
        comments,
        current_labels=current_labels,
        sync_labels=inputs.sync_labels == 1,
    )
    results = await _execute(executor, planned)

    log_decision(
        event.event_type.value,
        issue,
        labels.add,
        labels.remove,
        len(comments.add),
        len(comments.update),
        "completed",
    )
    return RunReport(
        disposition="completed",
        labels=labels,
        comments=comments,
        planned=planned,
        results=results,
    )
