"""
Serial link to the robot's microcontroller.

Send-only: the device accepts one ASCII command per line and never
acknowledges.
"""

from __future__ import annotations

import logging

import serial

from picking_robot.config import SERIAL_BAUDRATE, SERIAL_PORT, SERIAL_WRITE_TIMEOUT
from picking_robot.errors import SerialChannelError

logger = logging.getLogger(__name__)


class SerialLink:
    """
    Line-oriented command link.

    Protocol (host -> device):
        F\\n B\\n L\\n R\\n   - drive forward / backward / left / right
        S\\n                  - stop
        P1\\n P0\\n           - pick / place
    """

    def __init__(self, port: str = SERIAL_PORT, baudrate: int = SERIAL_BAUDRATE):
        self.port = port
        self.baudrate = baudrate

        self._serial: serial.Serial | None = None
        self._connected = False
        self._last_command: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def last_command(self) -> str | None:
        return self._last_command

    def connect(self) -> bool:
        """Open the serial port (8N1)."""
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=0,
                write_timeout=SERIAL_WRITE_TIMEOUT,
            )
            self._connected = True
            logger.info(f"Connected to device on {self.port}")
            return True
        except (serial.SerialException, ValueError) as e:
            logger.error(f"Failed to connect to device on {self.port}: {e}")
            self._serial = None
            self._connected = False
            return False

    def disconnect(self):
        """Close the serial port."""
        if self._serial:
            try:
                self._serial.close()
            except serial.SerialException as e:
                logger.warning(f"Error closing {self.port}: {e}")
            self._serial = None
        self._connected = False
        logger.info("Disconnected from device")

    def send(self, command: str):
        """
        Write one command line.

        Raises:
            SerialChannelError: if not connected or the write fails
        """
        if not self._serial or not self._connected:
            raise SerialChannelError(f"Not connected, dropped {command!r}")

        line = f"{command}\n"
        try:
            self._serial.write(line.encode("ascii"))
        except (serial.SerialException, serial.SerialTimeoutException) as e:
            raise SerialChannelError(f"Write {command!r} to {self.port} failed: {e}") from e

        self._last_command = command
        logger.debug(f"Sent: {command}")

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
