"""Rules file loading and validation.

This module provides:
- Decoding of the rules file as returned by the repository contents API
- YAML parsing of the rules text
- RuleConfig validation with readable error messages

The rules file normally lives in the repository and is fetched at the
triggering commit; ``load_config`` reads a local copy instead, which the
``validate`` command uses.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from labeler.config.schema import RuleConfig


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize ConfigError with message and optional path.

        Args:
            message: Error description
            path: Path of the rules file that caused the error
        """
        self.path = path
        super().__init__(message)


class ConfigValidationError(ConfigError):
    """Raised when config validation fails."""

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        validation_errors: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize ConfigValidationError.

        Args:
            message: Error description
            path: Path of the rules file
            validation_errors: List of Pydantic validation error dicts
        """
        self.validation_errors = validation_errors or []
        super().__init__(message, path)


def decode_config_content(data: Any, path: str | None = None) -> str:
    """Decode a contents API response into the rules text.

    Args:
        data: Parsed JSON body of ``GET /repos/{repo}/contents/{path}``
        path: Rules file path, for error messages

    Returns:
        The file text.

    Raises:
        ConfigError: If the response is not a single base64-encoded file
    """
    if (
        not isinstance(data, dict)
        or not isinstance(data.get("content"), str)
        or data.get("encoding", "base64") != "base64"
    ):
        msg = "the configuration path provides an invalid file"
        raise ConfigError(msg, path)

    try:
        return base64.b64decode(data["content"]).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        msg = f"the configuration path provides an invalid file: {e}"
        raise ConfigError(msg, path) from e


def load_yaml_text(text: str, path: Path | str | None = None) -> dict[str, Any]:
    """Parse YAML rules text.

    Args:
        text: YAML document
        path: Source of the text, for error messages

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the text cannot be parsed or is not a mapping
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML syntax: {e}"
        raise ConfigError(msg, path) from e

    if data is None:
        # Empty file
        return {}

    if not isinstance(data, dict):
        msg = "Config file must contain a YAML mapping (dictionary), not a list or scalar"
        raise ConfigError(msg, path)

    return data


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read config file: {e}"
        raise ConfigError(msg, path) from e

    return load_yaml_text(content, path)


def _describe_location(raw: dict[str, Any], loc: tuple[Any, ...]) -> str:
    """Render an error location, naming the rule it points into.

    ``("labels", 2, "regexes", 0)`` becomes ``labels[2] 'bug': regexes.0``;
    a rule without a usable name is called "some item".
    """
    if len(loc) >= 2 and loc[0] in ("labels", "comments") and isinstance(loc[1], int):
        section, index = loc[0], loc[1]
        items = raw.get(section)
        name = None
        if isinstance(items, list) and index < len(items) and isinstance(items[index], dict):
            name = items[index].get("name")
        rule = f"'{name}'" if isinstance(name, str) and name else "some item"
        rest = ".".join(str(part) for part in loc[2:])
        where = f"{section}[{index}] {rule}"
        return f"{where}: {rest}" if rest else where
    return ".".join(str(part) for part in loc) or "<root>"


def parse_rule_config(
    raw: dict[str, Any],
    *,
    sync_labels: int = 0,
    path: Path | str | None = None,
) -> RuleConfig:
    """Validate parsed YAML into a RuleConfig.

    Args:
        raw: Parsed rules file
        sync_labels: Selects the default mode when the file sets none
        path: Source of the rules, for error messages

    Returns:
        Validated RuleConfig

    Raises:
        ConfigValidationError: If the rules fail schema validation
    """
    try:
        return RuleConfig.model_validate(raw, context={"sync_labels": sync_labels})
    except ValidationError as e:
        errors = e.errors()
        error_msgs: list[str] = []
        for err in errors:
            loc = _describe_location(raw, tuple(err["loc"]))
            error_msgs.append(f"  - {loc}: {err['msg']}")

        message = (
            f"Config validation failed ({len(errors)} error(s)):\n"
            + "\n".join(error_msgs)
        )
        validation_error_dicts = [dict(err) for err in errors]
        raise ConfigValidationError(
            message, path=path, validation_errors=validation_error_dicts
        ) from e


def load_config(path: str | Path, *, sync_labels: int = 0) -> RuleConfig:
    """Load and validate a rules file from the local filesystem.

    Args:
        path: Path to the rules file
        sync_labels: Selects the default mode when the file sets none

    Returns:
        Validated RuleConfig

    Raises:
        ConfigError: If the file cannot be read or parsed
        ConfigValidationError: If the rules fail schema validation

    Example:
        >>> config = load_config(".github/labeler.yml", sync_labels=1)
        >>> [rule.name for rule in config.labels]
        ['bug', 'question']
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg, config_path)

    raw_config = load_yaml(config_path)
    return parse_rule_config(raw_config, sync_labels=sync_labels, path=config_path)
