"""Action executor for applying planned changes to GitHub.

This module provides the ActionExecutor class which:
- Dispatches planned actions to the matching GitHubClient call
- Supports dry runs (log what would happen, call nothing)
- Provides action failure isolation: a failed call is logged and
  recorded, and the remaining actions still run
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from labeler.github.client import GitHubClient

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    """Backend operations the labeler performs."""

    ADD_LABELS = "add_labels"
    REMOVE_LABEL = "remove_label"
    CREATE_COMMENT = "create_comment"
    UPDATE_COMMENT = "update_comment"
    UPDATE_ISSUE = "update_issue"


class ActionStatus(str, Enum):
    """Status of an action execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    DRY_RUN = "dry_run"


class PlannedAction(BaseModel):
    """One side effect decided by a run.

    ``target`` is the issue number, except for UPDATE_COMMENT where it is
    the comment ID.
    """

    model_config = ConfigDict(frozen=True)

    action_type: ActionType = Field(..., description="Operation to perform")
    target: int = Field(..., description="Issue number or comment ID")
    labels: list[str] = Field(default_factory=list, description="Labels (ADD_LABELS)")
    label: str = Field(default="", description="Label name (REMOVE_LABEL)")
    body: str = Field(default="", description="Comment or issue body")

    def describe(self) -> str:
        """Get a short human-readable description."""
        if self.action_type == ActionType.ADD_LABELS:
            return f"add labels {self.labels} to #{self.target}"
        if self.action_type == ActionType.REMOVE_LABEL:
            return f"remove label {self.label!r} from #{self.target}"
        if self.action_type == ActionType.CREATE_COMMENT:
            return f"comment on #{self.target}"
        if self.action_type == ActionType.UPDATE_COMMENT:
            return f"update comment {self.target}"
        return f"update body of #{self.target}"


class ActionResult(BaseModel):
    """Result of an action execution."""

    model_config = ConfigDict(frozen=True)

    action: PlannedAction = Field(..., description="The action that was run")
    status: ActionStatus = Field(..., description="Execution status")
    message: str = Field(default="", description="Status message or error")
    executed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the action was executed",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional action-specific details",
    )

    @property
    def is_success(self) -> bool:
        """Check if action succeeded."""
        return self.status == ActionStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        """Check if action failed."""
        return self.status == ActionStatus.FAILURE


class ActionExecutor:
    """Executor that runs planned actions against a GitHubClient."""

    def __init__(self, client: GitHubClient, *, dry_run: bool = False) -> None:
        """Initialize action executor.

        Args:
            client: Client bound to the event's repository.
            dry_run: If True, log actions without executing.
        """
        self._client = client
        self._dry_run = dry_run

    async def _dispatch(self, action: PlannedAction) -> None:
        client = self._client
        if action.action_type == ActionType.ADD_LABELS:
            await client.add_labels(action.target, action.labels)
        elif action.action_type == ActionType.REMOVE_LABEL:
            await client.remove_label(action.target, action.label)
        elif action.action_type == ActionType.CREATE_COMMENT:
            await client.create_comment(action.target, action.body)
        elif action.action_type == ActionType.UPDATE_COMMENT:
            await client.update_comment(action.target, action.body)
        else:
            await client.update_issue_body(action.target, action.body)

    async def execute(self, action: PlannedAction) -> ActionResult:
        """Execute a single action.

        Errors are caught and reported in the result; they never propagate.

        Args:
            action: Action to execute.

        Returns:
            ActionResult with execution status.
        """
        if self._dry_run:
            logger.info("[DRY RUN] Would %s", action.describe())
            return ActionResult(
                action=action,
                status=ActionStatus.DRY_RUN,
                message=f"Dry run: would {action.describe()}",
            )

        try:
            await self._dispatch(action)
        except Exception as e:
            logger.warning("Failed to %s: %s", action.describe(), e)
            details: dict[str, Any] = {}
            status_code = getattr(e, "status_code", None)
            if status_code is not None:
                details["status_code"] = status_code
            return ActionResult(
                action=action,
                status=ActionStatus.FAILURE,
                message=str(e),
                details=details,
            )

        logger.info("Done: %s", action.describe())
        return ActionResult(
            action=action,
            status=ActionStatus.SUCCESS,
            message=action.describe(),
        )

    async def execute_all(self, actions: list[PlannedAction]) -> list[ActionResult]:
        """Execute actions in order with failure isolation.

        Each action is awaited before the next starts, so later body
        updates overwrite earlier ones deterministically.

        Args:
            actions: Actions in plan order.

        Returns:
            One ActionResult per action, in the same order.
        """
        results: list[ActionResult] = []
        for action in actions:
            results.append(await self.execute(action))
        return results
