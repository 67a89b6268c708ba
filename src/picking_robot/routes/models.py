"""
Route model - immutable snapshot of a stored route.

A Route is an ordered sequence of Moves. Each Move is either a timed
directional movement or a timed pick/place action. Routes are read from
the remote store and never modified by the runner.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from picking_robot.config import ACTION_CODES, DEFAULT_ACTION_DURATION, DIRECTION_CODES
from picking_robot.errors import RouteFormatError


@dataclass(frozen=True)
class MovementMove:
    """Drive in one direction for a number of seconds."""

    direction: str  # "forward", "backward", "left" or "right"
    duration_seconds: int

    @property
    def code(self) -> str:
        """Single-letter command code (F, B, L, R)."""
        return DIRECTION_CODES[self.direction]

    @property
    def label(self) -> str:
        return self.direction


@dataclass(frozen=True)
class ActionMove:
    """Stand still and pick or place for a number of seconds."""

    action: str  # "pick" or "place"
    duration_seconds: int = DEFAULT_ACTION_DURATION

    @property
    def code(self) -> str:
        """Picking marker (P1 = pick, P0 = place)."""
        return ACTION_CODES[self.action]

    @property
    def label(self) -> str:
        return self.action


Move = Union[MovementMove, ActionMove]


@dataclass(frozen=True)
class Route:
    """Named, ordered sequence of moves."""

    id: str
    name: str
    moves: tuple[Move, ...] = ()

    def __len__(self) -> int:
        return len(self.moves)

    @property
    def is_playable(self) -> bool:
        return len(self.moves) > 0


def _parse_duration(value: Any, default: int | None = None) -> int:
    if value is None:
        if default is None:
            raise RouteFormatError("missing duration")
        return default
    if isinstance(value, bool):
        raise RouteFormatError(f"invalid duration: {value!r}")
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        raise RouteFormatError(f"invalid duration: {value!r}") from None
    if seconds < 0:
        raise RouteFormatError(f"negative duration: {seconds}")
    return seconds


def parse_move(record: Any) -> Move:
    """
    Parse one stored move record.

    Movement: {"direction": "forward", "duration": 3}
    Action:   {"type": "action", "action": "pick", "duration": 10}

    Raises:
        RouteFormatError: if the record is not a recognizable move
    """
    if not isinstance(record, dict):
        raise RouteFormatError(f"move record is not an object: {record!r}")

    if record.get("type") == "action" or "action" in record:
        action = str(record.get("action", "")).lower()
        if action not in ACTION_CODES:
            raise RouteFormatError(f"unknown action: {record.get('action')!r}")
        return ActionMove(
            action=action,
            duration_seconds=_parse_duration(record.get("duration"), DEFAULT_ACTION_DURATION),
        )

    direction = str(record.get("direction", "")).lower()
    if direction not in DIRECTION_CODES:
        raise RouteFormatError(f"unknown direction: {record.get('direction')!r}")
    return MovementMove(
        direction=direction,
        duration_seconds=_parse_duration(record.get("duration")),
    )


def _move_sort_key(key: str):
    # Push ids sort chronologically as strings; plain integers sort numerically
    return (0, int(key), "") if key.isdigit() else (1, 0, key)


def ordered_records(moves: Any) -> list[tuple[str, Any]]:
    """
    Return (move_id, record) pairs in playback order.

    The store keeps moves as an ordered map keyed by move id. Maps
    with only integer keys may come back as JSON arrays with holes.
    """
    if moves is None:
        return []
    if isinstance(moves, list):
        return [(str(i), rec) for i, rec in enumerate(moves) if rec is not None]
    if isinstance(moves, dict):
        return [(key, moves[key]) for key in sorted(moves, key=lambda k: _move_sort_key(str(k)))]
    raise RouteFormatError(f"moves is neither a map nor a list: {type(moves).__name__}")
