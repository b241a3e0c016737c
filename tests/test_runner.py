"""End-to-end tests for a single run."""

from datetime import UTC, datetime

import pytest

from labeler.config.loader import ConfigError, ConfigValidationError
from labeler.config.schema import RunInputs
from labeler.github.events import EventAdaptationError, EventContext, EventType, normalize_event
from labeler.rules.schema import CommentAnalysis, LabelAnalysis
from labeler.runner import plan_actions, run_event


def inputs(**overrides):
    values = {"configuration_path": ".github/labeler.yml", "repo_token": "t"}
    values.update(overrides)
    return RunInputs(**values)


class TestRunEvent:
    """Tests for complete runs against the fake API."""

    @pytest.mark.asyncio
    async def test_adds_matching_label(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug", "regexes": "[Bb]ug"}]}
        report = await run_event(inputs(), issue_event, github_client, ref="abc")
        assert report.disposition == "completed"
        assert report.labels.add == ["bug"]
        assert fake_github.labels[42] == {"bug"}

    @pytest.mark.asyncio
    async def test_sync_removes_present_label(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug", "regexes": "[Bb]ug"}]}
        fake_github.labels[42] = {"bug", "keep"}
        event = issue_event.model_copy(update={"body": "nothing relevant"})
        report = await run_event(inputs(sync_labels=1), event, github_client)
        assert report.labels.remove == ["bug"]
        assert fake_github.labels[42] == {"keep"}

    @pytest.mark.asyncio
    async def test_no_removal_without_sync(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug", "regexes": "nope", "mode": True}]}
        fake_github.labels[42] = {"bug"}
        report = await run_event(inputs(sync_labels=0), issue_event, github_client)
        assert report.labels.remove == ["bug"]
        assert report.planned == []
        assert fake_github.labels[42] == {"bug"}

    @pytest.mark.asyncio
    async def test_present_labels_not_added_again(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug"}]}
        fake_github.labels[42] = {"bug"}
        report = await run_event(inputs(), issue_event, github_client)
        assert report.planned == []
        assert not fake_github.calls("POST")

    @pytest.mark.asyncio
    async def test_title_only_with_include_title(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "crash", "regexes": "Crash"}]}
        without = await run_event(inputs(), issue_event, github_client)
        with_title = await run_event(inputs(include_title=1), issue_event, github_client)
        assert without.labels.add == []
        assert with_title.labels.add == ["crash"]

    @pytest.mark.asyncio
    async def test_comment_rule_sees_title_with_include_title(self, github_client, fake_github, issue_event):
        fake_github.rules = {"comments": [{"name": "crash", "content": "Logs: ${body}", "regexes": "Crash"}]}
        without = await run_event(inputs(), issue_event, github_client)
        with_title = await run_event(inputs(include_title=1), issue_event, github_client)
        assert without.comments.add == []
        assert with_title.comments.add == ["Logs: There is a Bug when I start the app"]

    @pytest.mark.asyncio
    async def test_comment_posted(self, github_client, fake_github, issue_event):
        fake_github.rules = {"comments": [{"name": "thanks", "content": "Thanks!", "author_association": "NONE"}]}
        report = await run_event(inputs(), issue_event, github_client)
        assert report.comments.add == ["Thanks!"]
        assert fake_github.calls("POST", "/issues/42/comments")

    @pytest.mark.asyncio
    async def test_update_targets_triggering_comment(self, github_client, fake_github, comment_payload):
        fake_github.rules = {"comments": [{"name": "tag", "content": "${body} [triaged]", "type": "update"}]}
        event = normalize_event("issue_comment", comment_payload)
        await run_event(inputs(), event, github_client)
        (request,) = fake_github.calls("PATCH", "/issues/comments/987654")
        assert b"[triaged]" in request.content

    @pytest.mark.asyncio
    async def test_update_targets_issue_body(self, github_client, fake_github, issue_event):
        fake_github.rules = {"comments": [{"name": "tag", "content": "edited", "type": "update"}]}
        await run_event(inputs(), issue_event, github_client)
        assert fake_github.calls("PATCH", "/issues/42")

    @pytest.mark.asyncio
    async def test_url_rule_renders_through_api(self, github_client, fake_github, comment_payload):
        fake_github.html = '<p><a href="https://bit.ly/xyz">https://bit.ly/xyz</a></p>'
        fake_github.rules = {
            "comments": [{"name": "short", "content": "No shorteners", "url_mode": "deny", "url_list": "bit\\.ly"}]
        }
        event = normalize_event("issue_comment", comment_payload)
        report = await run_event(inputs(), event, github_client)
        assert report.comments.add == ["No shorteners"]
        assert len(fake_github.calls("POST", "/markdown")) == 1

    @pytest.mark.asyncio
    async def test_backend_failure_is_not_fatal(self, github_client, fake_github, issue_event):
        fake_github.rules = {
            "labels": [{"name": "bug", "regexes": "Bug"}],
            "comments": [{"name": "thanks", "content": "Thanks!"}],
        }
        fake_github.fail = "/labels"
        report = await run_event(inputs(), issue_event, github_client)
        assert len(report.failures) == 1
        assert fake_github.calls("POST", "/comments")

    @pytest.mark.asyncio
    async def test_dry_run(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug"}]}
        report = await run_event(inputs(dry_run=True), issue_event, github_client)
        assert len(report.planned) == 1
        assert not fake_github.calls("POST")


class TestNotBefore:
    """Tests for the not-before gate."""

    @pytest.mark.asyncio
    async def test_older_issue_skipped(self, github_client, fake_github, issue_event):
        report = await run_event(inputs(not_before="2026-02-01T00:00:00Z"), issue_event, github_client)
        assert report.disposition == "not_before"
        assert fake_github.requests == []

    @pytest.mark.asyncio
    async def test_newer_issue_processed(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug"}]}
        report = await run_event(inputs(not_before="2026-01-01T00:00:00Z"), issue_event, github_client)
        assert report.disposition == "completed"

    @pytest.mark.asyncio
    async def test_unparsable_created_at_is_fatal(self, github_client, issue_event):
        event = issue_event.model_copy(update={"created_at": "garbage"})
        with pytest.raises(EventAdaptationError):
            await run_event(inputs(not_before=datetime(2026, 1, 1, tzinfo=UTC)), event, github_client)


class TestPush:
    """Tests for push handling."""

    @pytest.mark.asyncio
    async def test_fixed_label_on_referenced_issues(self, github_client, fake_github, push_payload):
        event = normalize_event("push", push_payload)
        report = await run_event(inputs(), event, github_client)
        assert report.disposition == "push"
        assert fake_github.labels == {12: {"fixed"}, 34: {"fixed"}}
        assert not fake_github.calls("GET", "/contents/")


class TestConfigErrors:
    """Tests for fatal configuration errors."""

    @pytest.mark.asyncio
    async def test_invalid_rules_abort_before_side_effects(self, github_client, fake_github, issue_event):
        fake_github.rules = {"labels": [{"name": "bug", "regexes": "(oops"}]}
        with pytest.raises(ConfigValidationError):
            await run_event(inputs(), issue_event, github_client)
        assert not fake_github.calls("POST")

    @pytest.mark.asyncio
    async def test_unreachable_rules_file(self, github_client, fake_github, issue_event):
        fake_github.fail = "/contents/"
        with pytest.raises(ConfigError, match="cannot fetch configuration"):
            await run_event(inputs(), issue_event, github_client)


class TestPlanActions:
    """Tests for action planning."""

    def test_order_and_filtering(self, issue_event):
        planned = plan_actions(
            issue_event,
            LabelAnalysis(add=["bug", "ui"], remove=["question", "absent"]),
            CommentAnalysis(add=["hi"], update=["body"]),
            current_labels={"ui", "question"},
            sync_labels=True,
        )
        assert [a.describe() for a in planned] == [
            "add labels ['bug'] to #42",
            "remove label 'question' from #42",
            "comment on #42",
            "update body of #42",
        ]

    def test_missing_issue_number_is_fatal(self):
        event = EventContext(event_type=EventType.ISSUES)
        with pytest.raises(EventAdaptationError, match="no issue number"):
            plan_actions(
                event,
                LabelAnalysis(add=["bug"]),
                CommentAnalysis(),
                current_labels=set(),
                sync_labels=False,
            )

    def test_missing_comment_id_is_fatal(self):
        event = EventContext(event_type=EventType.ISSUE_COMMENT, issue_number=1)
        with pytest.raises(EventAdaptationError, match="comment id"):
            plan_actions(
                event,
                LabelAnalysis(),
                CommentAnalysis(update=["x"]),
                current_labels=set(),
                sync_labels=False,
            )
