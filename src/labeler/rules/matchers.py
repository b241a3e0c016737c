"""Pattern matching for rule conditions.

Rule patterns come in two shapes:
- Delimited: ``/<body>/<flags>`` compiles ``body`` with the given flags
- Plain: the whole string is a regular expression without flags

A list of patterns is conjunctive: every pattern must match somewhere in the
text. An empty list always matches.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

DELIMITED_PATTERN = re.compile(r"^/(.+)/(.*)$", re.DOTALL)

# g, u and y change how a match is iterated or encoded, not whether it exists
PATTERN_FLAGS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "g": re.NOFLAG,
    "u": re.NOFLAG,
    "y": re.NOFLAG,
}


class PatternError(ValueError):
    """Raised when a rule pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        """Initialize pattern error.

        Args:
            pattern: The offending pattern string.
            reason: Why it could not be compiled.
        """
        self.pattern = pattern
        super().__init__(f"invalid pattern `{pattern}`: {reason}")


@functools.lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a rule pattern.

    Args:
        pattern: Plain or ``/body/flags`` pattern string.

    Returns:
        Compiled regular expression.

    Raises:
        PatternError: If the flags are unknown or the expression is invalid.
    """
    delimited = DELIMITED_PATTERN.match(pattern)
    if delimited:
        body, flag_chars = delimited.group(1), delimited.group(2)
    else:
        body, flag_chars = pattern, ""

    flags = re.NOFLAG
    for char in flag_chars:
        if char not in PATTERN_FLAGS:
            raise PatternError(pattern, f"unknown flag `{char}`")
        flags |= PATTERN_FLAGS[char]

    try:
        return re.compile(body, flags)
    except re.error as e:
        raise PatternError(pattern, str(e)) from e


def match_pattern(text: str, pattern: str) -> bool:
    """Check whether a single pattern matches anywhere in the text."""
    return compile_pattern(pattern).search(text) is not None


def matches(text: str, patterns: Iterable[str]) -> bool:
    """Check that every pattern matches the text.

    Args:
        text: Text to search.
        patterns: Patterns that must all match.

    Returns:
        True if all patterns match (vacuously true for no patterns).
    """
    for pattern in patterns:
        if not match_pattern(text, pattern):
            logger.debug("Pattern %r did not match", pattern)
            return False
    return True


def validate_patterns(patterns: Iterable[str]) -> list[str]:
    """Compile each pattern once so bad patterns fail at load time.

    Args:
        patterns: Patterns to check.

    Returns:
        The patterns, unchanged, as a list.

    Raises:
        PatternError: On the first pattern that does not compile.
    """
    checked = list(patterns)
    for pattern in checked:
        compile_pattern(pattern)
    return checked
