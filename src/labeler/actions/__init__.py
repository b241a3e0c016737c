"""Action execution for decided label and comment changes."""

from labeler.actions.executor import (
    ActionExecutor,
    ActionResult,
    ActionStatus,
    ActionType,
    PlannedAction,
)

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "ActionStatus",
    "ActionType",
    "PlannedAction",
]
