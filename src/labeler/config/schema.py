"""Pydantic schema models for configuration.

This module defines the models the labeler is configured with:
- RunInputs: Action inputs for one run (paths, token, switches)
- RuleConfig: Top-level rules file (labels, comments, default-mode)
- LabelRule: A rule that adds or removes a label
- CommentRule: A rule that posts or updates a comment

Rule files accept loose shapes (a bare string where a list is expected,
hyphenated keys, several mode spellings). Validators normalize all of them
here so nothing past this module sees anything but the canonical form.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from labeler.rules.links import URL_FIELDS
from labeler.rules.matchers import validate_patterns
from labeler.rules.mode import (
    CommentType,
    LabelMode,
    default_label_mode,
    resolve_label_mode,
)

logger = logging.getLogger(__name__)

TOP_LEVEL_KEYS = ("labels", "comments", "default-mode")

_UNSET = object()


def _to_list(value: Any) -> Any:
    """Promote a bare string to a one-element list."""
    if isinstance(value, str):
        return [value]
    return value


def _with_mode(rules: Any, default_mode: LabelMode) -> Any:
    """Give every rule record without a ``mode`` the default mode."""
    if rules is None:
        return []
    if not isinstance(rules, list):
        return rules
    return [
        {**item, "mode": default_mode} if isinstance(item, dict) and "mode" not in item else item
        for item in rules
    ]


def _normalize_keys(data: Any) -> Any:
    """Rewrite hyphenated keys (skip-if) to their underscore form (skip_if)."""
    if not isinstance(data, dict):
        return data
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        new_key = key.replace("-", "_") if isinstance(key, str) else key
        if new_key in normalized:
            msg = f"field `{new_key}` is given more than once"
            raise ValueError(msg)
        normalized[new_key] = value
    return normalized


class RuleBase(BaseModel):
    """Fields shared by label and comment rules.

    Attributes:
        name: Unique rule name, referenced by skip_if/remove_if
        content: Label name or comment body ("" emits nothing)
        regexes: Patterns that must all match the content
        author_association: Patterns that must all match the author association
        skip_if: Skip this rule if any of these rules was added earlier
        remove_if: Force this rule's content into the remove set if any of
                   these rules was added earlier
        mode: Events on which this rule may add and remove
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1)]
    content: str = ""
    regexes: list[str] = Field(default_factory=list)
    author_association: list[str] = Field(default_factory=list)
    skip_if: list[str] = Field(default_factory=list)
    remove_if: list[str] = Field(default_factory=list)
    mode: LabelMode = Field(default_factory=lambda: LabelMode.everywhere(remove=False))

    @model_validator(mode="before")
    @classmethod
    def normalize_record(cls, data: Any) -> Any:
        """Normalize keys and default ``content`` to the rule name."""
        if not isinstance(data, dict):
            msg = f"a rule must be a mapping, got {type(data).__name__}"
            raise ValueError(msg)
        data = _normalize_keys(data)
        content = data.get("content", _UNSET)
        if content is _UNSET and isinstance(data.get("name"), str):
            data["content"] = data["name"]
        elif content is None:
            data["content"] = ""
        return data

    @field_validator("regexes", "author_association", "skip_if", "remove_if", mode="before")
    @classmethod
    def promote_string(cls, v: Any) -> Any:
        """Accept a single string in place of a list."""
        return _to_list(v)

    @field_validator("regexes", "author_association")
    @classmethod
    def compile_patterns(cls, v: list[str]) -> list[str]:
        """Ensure every pattern compiles."""
        return validate_patterns(v)

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v: Any) -> LabelMode:
        """Resolve any accepted mode shape."""
        return resolve_label_mode(v)


class LabelRule(RuleBase):
    """Rule that adds a label when it matches and may remove it otherwise."""


class CommentRule(RuleBase):
    """Rule that posts a comment, or updates the triggering text, on match.

    ``content`` may contain ``${body}``, replaced by the triggering body
    (the issue, pull request or comment text, without the title).
    Comment rules only act in the ``add`` direction of their mode.

    Attributes:
        type: "add" posts a new comment, "update" rewrites the triggering
              comment or issue body
        url_mode: How url_list is applied to links in the text
        url_list: Link patterns; strings match the whole link, mappings match
                  named URL components (e.g. ``{hostname: example\\.com}``)
    """

    type: CommentType = CommentType.ADD
    url_mode: Literal["allow_only", "deny"] | None = None
    url_list: list[str | dict[str, str]] = Field(default_factory=list)

    @field_validator("url_list", mode="before")
    @classmethod
    def promote_url_list(cls, v: Any) -> Any:
        """Accept a single string in place of a list."""
        return _to_list(v)

    @field_validator("url_list")
    @classmethod
    def validate_url_list(
        cls,
        v: list[str | dict[str, str]],
    ) -> list[str | dict[str, str]]:
        """Check URL field names and compile every pattern."""
        for entry in v:
            if isinstance(entry, str):
                validate_patterns([entry])
                continue
            if not entry:
                msg = "url_list mapping entries must name at least one URL field"
                raise ValueError(msg)
            unknown = sorted(set(entry) - URL_FIELDS)
            if unknown:
                msg = f"unknown URL field(s) {unknown}, expected one of {sorted(URL_FIELDS)}"
                raise ValueError(msg)
            validate_patterns(entry.values())
        return v

    @model_validator(mode="after")
    def validate_url_settings(self) -> CommentRule:
        """Ensure url_mode and url_list are given together."""
        if (self.url_mode is None) != (not self.url_list):
            msg = "url_mode and url_list must be given together"
            raise ValueError(msg)
        return self

    @property
    def uses_links(self) -> bool:
        """Check if this rule is decided by the links in the text."""
        return not self.regexes and self.url_mode is not None


class RuleConfig(BaseModel):
    """Top-level rules file.

    Rules without their own ``mode`` get ``default_mode``: the
    file's ``default-mode`` if given, else a mode derived from the
    ``sync_labels`` validation context (1 adds and removes everywhere,
    0 only adds).

    Attributes:
        labels: Label rules, in evaluation order
        comments: Comment rules, in evaluation order
        default_mode: Mode applied to rules that set none
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    labels: list[LabelRule] = Field(default_factory=list)
    comments: list[CommentRule] = Field(default_factory=list)
    default_mode: LabelMode = Field(default_factory=lambda: LabelMode.everywhere(remove=False))

    @model_validator(mode="before")
    @classmethod
    def apply_default_mode(cls, data: Any, info: ValidationInfo) -> Any:
        """Check top-level keys and fill in the mode of rules that set none."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            msg = "configuration must be a mapping with `labels` and/or `comments`"
            raise ValueError(msg)

        unknown = [key for key in data if key not in TOP_LEVEL_KEYS]
        if unknown:
            msg = f"found unexpected field `{unknown[0]}` (expected one of {list(TOP_LEVEL_KEYS)})"
            raise ValueError(msg)

        if "default-mode" in data:
            default_mode = resolve_label_mode(data["default-mode"])
        else:
            context = info.context or {}
            default_mode = default_label_mode(context.get("sync_labels", 0))

        return {
            "labels": _with_mode(data.get("labels"), default_mode),
            "comments": _with_mode(data.get("comments"), default_mode),
            "default_mode": default_mode,
        }

    @model_validator(mode="after")
    def validate_unique_names(self) -> RuleConfig:
        """Ensure rule names are unique within labels and within comments."""
        for section, rules in (("labels", self.labels), ("comments", self.comments)):
            names = [rule.name for rule in rules]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            if duplicates:
                msg = f"Duplicate rule names in {section}: {duplicates}"
                raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def warn_unknown_references(self) -> RuleConfig:
        """Log skip_if/remove_if names that no earlier rule defines."""
        for rules in (self.labels, self.comments):
            seen: set[str] = set()
            for rule in rules:
                refs = [*rule.skip_if, *rule.remove_if]
                for ref in refs:
                    if ref not in seen:
                        logger.warning(
                            "Rule '%s' references '%s', which is not defined before it",
                            rule.name,
                            ref,
                        )
                seen.add(rule.name)
        return self


class RunInputs(BaseModel):
    """Inputs for a single labeler run.

    Attributes:
        configuration_path: Path of the rules file in the repository
        repo_token: Token used for every GitHub call
        not_before: Ignore issues created before this time
        include_title: Prefix the title to the body for label matching (0/1)
        sync_labels: Remove labels whose rule no longer matches (0/1)
        dry_run: Plan actions without executing them
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    configuration_path: Annotated[str, Field(min_length=1)]
    repo_token: Annotated[str, Field(min_length=1, repr=False)]
    not_before: datetime | None = None
    include_title: Literal[0, 1] = 0
    sync_labels: Literal[0, 1] = 0
    dry_run: bool = False

    @field_validator("not_before", mode="before")
    @classmethod
    def parse_not_before(cls, v: Any) -> Any:
        """Treat an empty or unparsable timestamp as unset."""
        if v is None or isinstance(v, datetime):
            return v
        if not isinstance(v, str) or not v.strip():
            return None
        try:
            return datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Parameter `not-before` is set invalid: %r", v)
            return None

    @field_validator("not_before")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Interpret naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v
