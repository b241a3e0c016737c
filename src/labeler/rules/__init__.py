"""Rules engine for label and comment analysis."""

from labeler.rules.engine import RulesEngine, analyze_comments, analyze_labels
from labeler.rules.links import LinkExtractor, any_link_hits, link_hits, url_component
from labeler.rules.matchers import PatternError, compile_pattern, matches
from labeler.rules.mode import (
    CommentType,
    LabelMode,
    ModeError,
    check_event,
    default_label_mode,
    resolve_label_mode,
)
from labeler.rules.schema import CommentAnalysis, LabelAnalysis

__all__ = [
    "CommentAnalysis",
    "CommentType",
    "LabelAnalysis",
    "LabelMode",
    "LinkExtractor",
    "ModeError",
    "PatternError",
    "RulesEngine",
    "analyze_comments",
    "analyze_labels",
    "any_link_hits",
    "check_event",
    "compile_pattern",
    "default_label_mode",
    "link_hits",
    "matches",
    "resolve_label_mode",
    "url_component",
]
