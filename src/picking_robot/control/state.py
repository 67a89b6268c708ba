"""
Execution state - the engine's single mutable record, plus the read-only
snapshot published to everything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from picking_robot.routes.models import ActionMove, Move, Route


class PauseReason(Enum):
    """Why playback is paused."""

    USER = auto()
    DETECTION = auto()


class EngineStatus(Enum):
    """Engine mode, derived from ExecutionState."""

    IDLE = auto()
    RUNNING = auto()
    PAUSED_USER = auto()
    PAUSED_DETECTION = auto()


@dataclass
class ExecutionState:
    """
    Mutable playback state, owned by ExecutionEngine.

    remaining_seconds is the authoritative time left in the current move;
    pause snapshots and display both read it.
    """

    route: Optional[Route] = None
    move_index: int = 0
    remaining_seconds: int = 0
    is_paused: bool = False
    pause_reason: Optional[PauseReason] = None

    @property
    def status(self) -> EngineStatus:
        if self.route is None:
            return EngineStatus.IDLE
        if self.pause_reason is PauseReason.USER:
            return EngineStatus.PAUSED_USER
        if self.pause_reason is PauseReason.DETECTION:
            return EngineStatus.PAUSED_DETECTION
        return EngineStatus.RUNNING

    @property
    def current_move(self) -> Optional[Move]:
        if self.route is None or not 0 <= self.move_index < len(self.route.moves):
            return None
        return self.route.moves[self.move_index]

    def reset(self, route: Optional[Route] = None):
        self.route = route
        self.move_index = 0
        self.remaining_seconds = 0
        self.is_paused = False
        self.pause_reason = None

    def pause(self, reason: PauseReason):
        self.is_paused = True
        self.pause_reason = reason

    def unpause(self):
        self.is_paused = False
        self.pause_reason = None


def _status_message(state: ExecutionState, move: Optional[Move]) -> str:
    status = state.status
    if status is EngineStatus.IDLE:
        return "Stopped"
    if status is EngineStatus.PAUSED_USER:
        return f"Paused by user ({state.remaining_seconds}s remaining)"
    if status is EngineStatus.PAUSED_DETECTION:
        return f"Obstacle detected - paused ({state.remaining_seconds}s remaining)"
    if isinstance(move, ActionMove):
        return "Picking..." if move.action == "pick" else "Placing..."
    if move is not None:
        return f"Moving: {move.direction}"
    return "Running"


@dataclass(frozen=True)
class ExecutionSnapshot:
    """Display projection of ExecutionState at one instant."""

    status: EngineStatus
    route_id: Optional[str]
    route_name: Optional[str]
    move_index: int
    move: Optional[Move]
    remaining_seconds: int
    message: str

    @classmethod
    def of(cls, state: ExecutionState) -> ExecutionSnapshot:
        move = state.current_move
        return cls(
            status=state.status,
            route_id=state.route.id if state.route else None,
            route_name=state.route.name if state.route else None,
            move_index=state.move_index,
            move=move,
            remaining_seconds=state.remaining_seconds,
            message=_status_message(state, move),
        )

    @property
    def is_active(self) -> bool:
        return self.status is not EngineStatus.IDLE

    def to_dict(self) -> dict:
        """Convert to dict for JSON API."""
        move = None
        if isinstance(self.move, ActionMove):
            move = {"type": "action", "action": self.move.action, "duration": self.move.duration_seconds}
        elif self.move is not None:
            move = {"direction": self.move.direction, "duration": self.move.duration_seconds}
        return {
            "status": self.status.name,
            "route_id": self.route_id,
            "route_name": self.route_name,
            "move_index": self.move_index,
            "move": move,
            "remaining_seconds": self.remaining_seconds,
            "message": self.message,
        }
