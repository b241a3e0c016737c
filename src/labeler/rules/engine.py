"""Rule analysis engine.

This module provides the RulesEngine class for evaluating one piece of
event content against the configured rules. It handles:
- Mode gating (which events let a rule add, remove or comment)
- skip_if / remove_if chaining between rules of the same pass
- Pattern and author association matching
- Link allow/deny evaluation for URL-mode comment rules
- Final reconciliation (removal wins over addition)

Rules are evaluated strictly in declaration order; a rule only sees the
names added by rules before it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from labeler.rules.links import LinkExtractor, any_link_hits
from labeler.rules.matchers import matches
from labeler.rules.mode import CommentType, check_event
from labeler.rules.schema import CommentAnalysis, LabelAnalysis

if TYPE_CHECKING:
    from collections.abc import Iterable

    from labeler.config.schema import CommentRule, LabelRule, RuleBase
    from labeler.github.events import EventType

logger = logging.getLogger(__name__)

BODY_PLACEHOLDER = "${body}"


def _append_unique(items: list[str], value: str) -> None:
    """Append a non-empty value unless already present."""
    if value and value not in items:
        items.append(value)


def _first_added(names: Iterable[str], added: set[str]) -> str | None:
    return next((name for name in names if name in added), None)


class RulesEngine:
    """Engine for analyzing event content against label and comment rules.

    One engine serves one event: the content, author association and event
    type are fixed at construction, and each ``analyze_*`` call is a fresh
    pass with its own added-names state.
    """

    def __init__(
        self,
        content: str,
        author_association: str,
        event_type: EventType,
        *,
        body: str | None = None,
        links: LinkExtractor | None = None,
    ) -> None:
        """Initialize rules engine.

        Args:
            content: Text the rules are matched against.
            author_association: Author relationship (e.g. MEMBER).
            event_type: Triggering event type.
            body: Text substituted for ``${body}`` in comment content
                (defaults to ``content``).
            links: Link extractor for URL-mode comment rules.
        """
        self.content = content
        self.body = content if body is None else body
        self.author_association = author_association
        self.event_type = event_type
        self._links = links

    def _conditions_match(self, rule: RuleBase) -> tuple[bool, str]:
        """Check the author association and content patterns of a rule.

        Returns:
            Tuple of (matched, reason).
        """
        if not matches(self.author_association, rule.author_association):
            return False, f"author association '{self.author_association}' not allowed"
        if not matches(self.content, rule.regexes):
            return False, "content patterns did not match"
        return True, "all patterns matched"

    def analyze_labels(self, rules: list[LabelRule]) -> LabelAnalysis:
        """Decide which labels to add and remove.

        Args:
            rules: Label rules in declaration order.

        Returns:
            LabelAnalysis with disjoint add and remove lists.
        """
        added_names: set[str] = set()
        add: list[str] = []
        remove: list[str] = []

        for rule in rules:
            need_add = check_event(self.event_type, rule.mode, "add")
            need_remove = check_event(self.event_type, rule.mode, "remove")
            if not need_add and not need_remove:
                logger.debug(
                    "Rule '%s' is inactive for %s", rule.name, self.event_type.value
                )
                continue

            skipped_by = _first_added(rule.skip_if, added_names)
            if skipped_by is not None:
                logger.debug("Rule '%s' skipped: '%s' already added", rule.name, skipped_by)
                continue

            removed_by = _first_added(rule.remove_if, added_names)
            if removed_by is not None:
                logger.debug(
                    "Rule '%s' force-removed: '%s' already added", rule.name, removed_by
                )
                _append_unique(remove, rule.content)
                continue

            matched, reason = self._conditions_match(rule)
            if matched and need_add:
                added_names.add(rule.name)
                _append_unique(add, rule.content)
                logger.debug("Rule '%s' adds %r: %s", rule.name, rule.content, reason)
            elif not matched and need_remove:
                _append_unique(remove, rule.content)
                logger.debug("Rule '%s' removes %r: %s", rule.name, rule.content, reason)
            else:
                logger.debug("Rule '%s' produced nothing: %s", rule.name, reason)

        reconciled = [item for item in add if item not in remove]
        return LabelAnalysis(add=reconciled, remove=remove)

    async def _links_hit(self, rule: CommentRule) -> tuple[bool, str]:
        """Evaluate a URL-mode rule against the links in the content."""
        if self._links is None:
            raise RuntimeError(f"rule '{rule.name}' needs a link extractor")

        links = await self._links.links(self.content)
        if not links:
            return False, "content has no links"
        logger.debug("Links in content: %s", links)

        if rule.url_mode is None:
            return False, "rule has no url_mode"
        if any_link_hits(links, rule.url_mode, rule.url_list):
            return True, f"a link hits url_mode {rule.url_mode}"
        return False, f"no link hits url_mode {rule.url_mode}"

    async def analyze_comments(self, rules: list[CommentRule]) -> CommentAnalysis:
        """Decide which comments to post and which bodies to rewrite.

        Comment rules only act in the ``add`` direction of their mode: a
        rule whose remove_if fires, or that does not match, produces
        nothing. A rule with ``type: update`` does not register its name,
        so later ``skip_if``/``remove_if`` lists cannot observe it.

        Args:
            rules: Comment rules in declaration order.

        Returns:
            CommentAnalysis with add and update bodies.
        """
        added_names: set[str] = set()
        add: list[str] = []
        update: list[str] = []

        for rule in rules:
            if not check_event(self.event_type, rule.mode, "add"):
                logger.debug(
                    "Rule '%s' is inactive for %s", rule.name, self.event_type.value
                )
                continue

            skipped_by = _first_added(rule.skip_if, added_names)
            if skipped_by is not None:
                logger.debug("Rule '%s' skipped: '%s' already added", rule.name, skipped_by)
                continue

            removed_by = _first_added(rule.remove_if, added_names)
            if removed_by is not None:
                logger.debug(
                    "Rule '%s' suppressed: '%s' already added", rule.name, removed_by
                )
                continue

            matched, reason = self._conditions_match(rule)
            if matched and rule.uses_links:
                matched, reason = await self._links_hit(rule)
            if not matched:
                logger.debug("Rule '%s' did not match: %s", rule.name, reason)
                continue

            body = rule.content.replace(BODY_PLACEHOLDER, self.body)
            if rule.type == CommentType.ADD:
                added_names.add(rule.name)
                _append_unique(add, body)
            else:
                _append_unique(update, body)
            logger.debug("Rule '%s' %ss a comment: %s", rule.name, rule.type.value, reason)

        return CommentAnalysis(add=add, update=update)


def analyze_labels(
    rules: list[LabelRule],
    content: str,
    author_association: str,
    event_type: EventType,
) -> LabelAnalysis:
    """Analyze label rules against one piece of content.

    This is a convenience function that creates a RulesEngine and analyzes.

    Args:
        rules: Label rules in declaration order.
        content: Text to match.
        author_association: Author relationship to the repository.
        event_type: Triggering event type.

    Returns:
        LabelAnalysis with labels to add and remove.
    """
    return RulesEngine(content, author_association, event_type).analyze_labels(rules)


async def analyze_comments(
    rules: list[CommentRule],
    content: str,
    author_association: str,
    event_type: EventType,
    links: LinkExtractor | None = None,
    body: str | None = None,
) -> CommentAnalysis:
    """Analyze comment rules against one piece of content.

    Args:
        rules: Comment rules in declaration order.
        content: Text to match.
        author_association: Author relationship to the repository.
        event_type: Triggering event type.
        links: Link extractor, required when any rule uses url_mode.
        body: Text substituted for ``${body}`` (defaults to ``content``).

    Returns:
        CommentAnalysis with comments to post and bodies to update.
    """
    engine = RulesEngine(content, author_association, event_type, body=body, links=links)
    return await engine.analyze_comments(rules)
