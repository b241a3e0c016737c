"""Configuration module for the issue labeler.

This module provides rules file loading, validation, and schema definitions
for the labeler.

Usage:
    from labeler.config import load_config, RuleConfig

    config = load_config(".github/labeler.yml")  # Local rules file
    config = parse_rule_config(yaml_dict, sync_labels=1)
"""

from labeler.config.loader import (
    ConfigError,
    ConfigValidationError,
    decode_config_content,
    load_config,
    load_yaml_text,
    parse_rule_config,
)
from labeler.config.schema import CommentRule, LabelRule, RuleConfig, RunInputs

__all__ = [
    "CommentRule",
    "ConfigError",
    "ConfigValidationError",
    "LabelRule",
    "RuleConfig",
    "RunInputs",
    "decode_config_content",
    "load_config",
    "load_yaml_text",
    "parse_rule_config",
]
