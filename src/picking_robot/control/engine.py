"""
Execution engine - route playback state machine.

Sequences the moves of one route, keeps the authoritative countdown and
arbitrates between the three things that interrupt a move: the user,
the obstacle detector and the move's own completion.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from picking_robot.control.state import (
    EngineStatus,
    ExecutionSnapshot,
    ExecutionState,
    PauseReason,
)
from picking_robot.control.timer import MoveTimer
from picking_robot.errors import InvalidPlayTarget
from picking_robot.routes.models import ActionMove

logger = logging.getLogger(__name__)

Listener = Callable[[ExecutionSnapshot], None]


class ExecutionEngine:
    """
    Route playback state machine.

    States:
    - IDLE: No route loaded
    - RUNNING: Current move issued, countdown running
    - PAUSED_USER: Stopped by the user; only the user resumes
    - PAUSED_DETECTION: Stopped by an obstacle; resumes when it clears

    Playback cycles through the route forever; only stop() ends it.

    All methods run to completion on the event loop thread and never
    await, so state needs no locking. Timer callbacks can still arrive
    after the pair they belong to was replaced, so each one re-checks its
    generation and the pause flag before touching state.

    Usage:
        engine = ExecutionEngine(dispatcher, catalog)
        engine.add_listener(print)
        engine.play("-NxAbc123")
        engine.pause()
        engine.play()       # resume
        engine.stop()
    """

    def __init__(self, dispatcher, catalog, timer: Optional[MoveTimer] = None):
        self._dispatcher = dispatcher
        self._catalog = catalog
        self._timer = timer or MoveTimer()
        self._state = ExecutionState()
        self._listeners: list[Listener] = []
        self._snapshot = ExecutionSnapshot.of(self._state)

    @property
    def state(self) -> ExecutionState:
        """Live state. Read it, never mutate it from outside."""
        return self._state

    @property
    def snapshot(self) -> ExecutionSnapshot:
        return self._snapshot

    @property
    def status(self) -> EngineStatus:
        return self._state.status

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- User controls ---

    def play(self, route_id: Optional[str] = None):
        """
        Start a route from its first move, or resume a user pause.

        Args:
            route_id: Route to start. None resumes the current route
                if the user paused it.

        Raises:
            InvalidPlayTarget: if the route is unknown or has no moves
        """
        if route_id is None:
            status = self.status
            if status is EngineStatus.PAUSED_USER:
                self.resume()
            elif status is EngineStatus.IDLE:
                raise InvalidPlayTarget("No route selected")
            else:
                logger.info(f"Play ignored while {status.name}")
            return

        route = self._catalog.get(route_id)
        if route is None:
            raise InvalidPlayTarget(f"Route {route_id} not found")
        if not route.is_playable:
            raise InvalidPlayTarget(f"Route '{route.name}' has no moves")

        self._timer.cancel()
        self._state.reset(route)
        logger.info(f"Playing route '{route.name}' ({len(route)} moves)")
        self._activate(fresh=True)

    def resume(self):
        """Continue a user-paused move with the time it had left."""
        if self.status is not EngineStatus.PAUSED_USER:
            logger.info(f"Resume ignored while {self.status.name}")
            return
        self._state.unpause()
        logger.info(f"Resumed by user ({self._state.remaining_seconds}s remaining)")
        self._activate(fresh=False)

    def pause(self):
        """Pause on user request. A detection pause is left to the detector."""
        status = self.status
        if status is EngineStatus.RUNNING:
            self._halt(PauseReason.USER)
        else:
            logger.info(f"Pause ignored while {status.name}")

    def stop(self):
        """Stop the robot and forget the route."""
        self._timer.cancel()
        self._dispatcher.stop(clear=True)
        self._state.reset()
        logger.info("Playback stopped")
        self._publish()

    # --- Detection ---

    def on_detection(self, detected: bool):
        """Obstacle signal changed (or was re-sent)."""
        state = self._state
        if detected:
            if state.route is not None and not state.is_paused:
                logger.info("Obstacle detected, pausing")
                self._halt(PauseReason.DETECTION)
        elif state.pause_reason is PauseReason.DETECTION:
            state.unpause()
            logger.info(f"Obstacle cleared, resuming ({state.remaining_seconds}s remaining)")
            self._activate(fresh=False)

    # --- Internals ---

    def _halt(self, reason: PauseReason):
        self._timer.cancel()
        self._dispatcher.stop()
        # remaining_seconds is already up to date: the ticker writes it synchronously
        self._state.pause(reason)
        logger.info(f"Paused ({reason.name}) with {self._state.remaining_seconds}s remaining")
        self._publish()

    def _activate(self, fresh: bool):
        """
        Issue the current move and schedule its timers.

        Args:
            fresh: Start from the move's full duration instead of the
                preserved remaining time
        """
        state = self._state
        move = state.current_move
        if move is None:
            logger.error(f"Invalid move index {state.move_index} at activation, stopping")
            self.stop()
            return

        if fresh:
            state.remaining_seconds = move.duration_seconds
        seconds = state.remaining_seconds

        self._timer.cancel()
        self._dispatcher.activate(move, seconds)
        self._timer.start(seconds, self._on_tick, self._on_complete)
        self._publish()

    def _on_tick(self, generation: int):
        if not self._timer.is_current(generation) or self._state.is_paused:
            return
        self._state.remaining_seconds = max(0, self._state.remaining_seconds - 1)
        logger.debug(f"Tick: {self._state.remaining_seconds}s remaining")
        self._publish()

    def _on_complete(self, generation: int):
        state = self._state
        if not self._timer.is_current(generation) or state.is_paused or state.route is None:
            return

        if isinstance(state.current_move, ActionMove):
            self._dispatcher.finish_action()

        state.move_index = (state.move_index + 1) % len(state.route.moves)
        state.remaining_seconds = 0
        logger.info(f"Move complete, advancing to move {state.move_index}")
        self._activate(fresh=True)

    def _publish(self):
        snapshot = ExecutionSnapshot.of(self._state)
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"State listener error: {e}", exc_info=True)
