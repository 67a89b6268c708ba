"""
Command dispatcher - turns moves into channel commands.

Two independent output channels:
- remote: the shared command node (authoritative record of what was issued)
- serial: direct best-effort link to the device

Serial failures are logged and swallowed; they never stop playback.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from picking_robot.config import PICKING_CLEAR, STOP_CODE
from picking_robot.errors import SerialChannelError
from picking_robot.routes.models import ActionMove, Move

logger = logging.getLogger(__name__)


def timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CommandDispatcher:
    """
    Emits move, stop and action-clear commands.

    Args:
        remote: Object with submit(fields) (see remote.RemoteChannel)
        serial: Object with send(command) (see comm.SerialLink), or None
    """

    def __init__(self, remote, serial=None):
        self.remote = remote
        self.serial = serial

    def activate(self, move: Move, seconds: int):
        """
        Issue the command for a move that starts or resumes now.

        Action moves need the platform stationary, so the stop code always
        goes out ahead of the pick/place marker.
        """
        if isinstance(move, ActionMove):
            self.remote.submit({
                "Movements": STOP_CODE,
                "picking": move.code,
                "timestamp": timestamp(),
            })
            self._send_serial(STOP_CODE, move.code)
            logger.info(f"Issued {move.action} ({seconds}s)")
        else:
            self.remote.submit({
                "Movements": move.code,
                "duration": seconds,
                "timestamp": timestamp(),
            })
            self._send_serial(move.code)
            logger.info(f"Issued {move.direction} ({seconds}s)")

    def finish_action(self):
        """Clear the picking marker so it does not leak into the next move."""
        self.remote.submit({"picking": PICKING_CLEAR, "timestamp": timestamp()})

    def stop(self, clear: bool = False):
        """
        Stop the platform on both channels.

        Args:
            clear: Also reset move-specific fields (duration, picking)
        """
        fields = {"Movements": STOP_CODE, "timestamp": timestamp()}
        if clear:
            fields["duration"] = 0
            fields["picking"] = PICKING_CLEAR
        self.remote.submit(fields)
        self._send_serial(STOP_CODE)

    def _send_serial(self, *commands: str):
        if self.serial is None:
            return
        for command in commands:
            try:
                self.serial.send(command)
            except SerialChannelError as e:
                logger.warning(f"Serial send skipped: {e}")
            except Exception as e:
                logger.warning(f"Serial send failed: {e}")
