"""Tests for action execution and failure isolation."""

import pytest

from labeler.actions.executor import (
    ActionExecutor,
    ActionStatus,
    ActionType,
    PlannedAction,
)

ADD = PlannedAction(action_type=ActionType.ADD_LABELS, target=42, labels=["bug"])
REMOVE = PlannedAction(action_type=ActionType.REMOVE_LABEL, target=42, label="question")
COMMENT = PlannedAction(action_type=ActionType.CREATE_COMMENT, target=42, body="hi")


class TestExecute:
    """Tests for single actions."""

    @pytest.mark.asyncio
    async def test_success(self, github_client, fake_github):
        result = await ActionExecutor(github_client).execute(ADD)
        assert result.is_success
        assert fake_github.labels[42] == {"bug"}

    @pytest.mark.asyncio
    async def test_dry_run_calls_nothing(self, github_client, fake_github):
        result = await ActionExecutor(github_client, dry_run=True).execute(ADD)
        assert result.status == ActionStatus.DRY_RUN
        assert fake_github.requests == []

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self, github_client, fake_github, caplog):
        fake_github.fail = "/labels"
        with caplog.at_level("WARNING"):
            result = await ActionExecutor(github_client).execute(ADD)
        assert result.is_failure
        assert result.details["status_code"] == 500
        assert "Failed to add labels" in caplog.text


class TestExecuteAll:
    """Tests for action lists."""

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_actions(self, github_client, fake_github):
        fake_github.fail = "/labels"
        results = await ActionExecutor(github_client).execute_all([ADD, REMOVE, COMMENT])
        assert [r.status for r in results] == [
            ActionStatus.FAILURE,
            ActionStatus.FAILURE,
            ActionStatus.SUCCESS,
        ]
        assert fake_github.calls("POST", "/issues/42/comments")

    @pytest.mark.asyncio
    async def test_results_follow_plan_order(self, github_client):
        actions = [COMMENT, ADD]
        results = await ActionExecutor(github_client).execute_all(actions)
        assert [r.action for r in results] == actions

    @pytest.mark.asyncio
    async def test_dispatch_targets(self, github_client, fake_github):
        actions = [
            PlannedAction(action_type=ActionType.UPDATE_COMMENT, target=555, body="a"),
            PlannedAction(action_type=ActionType.UPDATE_ISSUE, target=42, body="b"),
        ]
        await ActionExecutor(github_client).execute_all(actions)
        assert fake_github.calls("PATCH", "/issues/comments/555")
        assert fake_github.calls("PATCH", "/issues/42")


def test_describe():
    assert ADD.describe() == "add labels ['bug'] to #42"
    assert REMOVE.describe() == "remove label 'question' from #42"
