"""Mode resolution: which events let a rule add, remove or comment.

Rules accept several configuration shapes for ``mode``::

    mode: issues                      # add and remove on issues
    mode: [add, pull_request]         # add on every event, both on PRs
    mode: {add: [issues], remove: null}
    mode: {issues: add, pull_request: [add, remove]}

All of them resolve to a canonical ``LabelMode`` where each direction is
either ``True`` (every event) or a set of event types.

Comment rules share the same mode and only use its ``add`` direction; a
separate ``CommentType`` says whether they post or update.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from labeler.github.events import EventType

Direction = Literal["add", "remove"]
DIRECTIONS: tuple[str, ...] = ("add", "remove")

# A direction is either enabled everywhere or for a set of events
EventSet = Literal[True] | frozenset[EventType]


class ModeError(ValueError):
    """Raised when a mode configuration value is not recognized."""


class CommentType(str, Enum):
    """What a comment rule does with its content."""

    ADD = "add"
    UPDATE = "update"


class LabelMode(BaseModel):
    """Canonical per-direction event gating for a rule."""

    model_config = ConfigDict(frozen=True)

    add: EventSet = Field(default=frozenset(), description="Events that may add")
    remove: EventSet = Field(default=frozenset(), description="Events that may remove")

    @classmethod
    def everywhere(cls, *, remove: bool = True) -> LabelMode:
        """Mode enabling add on all events, and remove too unless disabled."""
        return cls(add=True, remove=True if remove else frozenset())


def parse_event(value: Any) -> EventType:
    """Convert a configuration token to an EventType.

    Raises:
        ModeError: If the token is not a recognized event name.
    """
    if isinstance(value, str):
        try:
            return EventType(value)
        except ValueError:
            pass
    raise ModeError(f"found unexpected value `{value}`")


class _LabelModeBuilder:
    """Accumulates mode entries before freezing them into a LabelMode."""

    def __init__(self) -> None:
        self._events: dict[str, set[EventType] | Literal[True]] = {
            "add": set(),
            "remove": set(),
        }

    def enable(self, direction: str, events: list[Any] | Literal[True]) -> None:
        current = self._events[direction]
        if current is True:
            return
        if events is True:
            self._events[direction] = True
            return
        current.update(parse_event(event) for event in events)

    def append(self, key: Any, values: list[Any] | Literal[True] = True) -> None:
        """Apply one entry: a direction key or an event key with its values."""
        if key in DIRECTIONS:
            self.enable(key, values)
            return

        event = parse_event(key)
        directions = list(DIRECTIONS) if values is True else values
        for direction in directions:
            if direction not in DIRECTIONS:
                raise ModeError(f"found unexpected value `{direction}`")
            self.enable(direction, [event])

    def build(self) -> LabelMode:
        return LabelMode(
            **{
                direction: events if events is True else frozenset(events)
                for direction, events in self._events.items()
            }
        )


def _as_values(value: Any) -> list[Any] | Literal[True]:
    """Normalize a mapping value: null/true mean 'all', a string is one item."""
    if value is None or value is True:
        return True
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return value
    raise ModeError(f"found unexpected value `{value}` in mode")


def resolve_label_mode(raw: Any) -> LabelMode:
    """Resolve any accepted label mode shape to a LabelMode.

    Args:
        raw: Mode value from configuration (bool, str, list or mapping);
            ``false`` and ``null`` give a mode that is never active.

    Returns:
        Canonical LabelMode.

    Raises:
        ModeError: If any token or value shape is not recognized.
    """
    if isinstance(raw, LabelMode):
        return raw
    if raw is True:
        return LabelMode.everywhere()
    if raw is False or raw is None:
        return LabelMode()

    builder = _LabelModeBuilder()
    if isinstance(raw, str):
        builder.append(raw)
    elif isinstance(raw, list):
        for value in raw:
            if not isinstance(value, str):
                raise ModeError(f"found unexpected value `{value}` in mode list")
            builder.append(value)
    elif isinstance(raw, dict):
        for key, value in raw.items():
            builder.append(key, _as_values(value))
    else:
        raise ModeError(f"found unexpected type of mode `{type(raw).__name__}`")
    return builder.build()


def check_event(event_type: EventType, mode: LabelMode, direction: Direction) -> bool:
    """Check whether a direction is enabled for an event.

    Args:
        event_type: Triggering event.
        mode: Resolved label mode.
        direction: "add" or "remove".

    Returns:
        True if the direction is ``True`` or lists the event.
    """
    events = getattr(mode, direction)
    return events is True or event_type in events


def default_label_mode(sync_labels: int) -> LabelMode:
    """Default mode for label rules when the configuration sets none.

    Args:
        sync_labels: 1 enables removal everywhere, 0 only adds.

    Raises:
        ModeError: For any other value.
    """
    if sync_labels == 1:
        return LabelMode.everywhere()
    if sync_labels == 0:
        return LabelMode.everywhere(remove=False)
    raise ModeError(f"found unexpected value of sync-labels ({sync_labels}, should be 0 or 1)")
