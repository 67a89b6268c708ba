"""
Runtime tunable parameters with JSON persistence.

One Parameters instance is shared by the controller and the web
interface. The controller reads every value once, when it builds its
components, so changes made at runtime (web API) only take effect after a
restart; save them with _save to keep them. Single-threaded asyncio means
no locks needed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from picking_robot.config import (
    DATABASE_URL,
    DETECTION_FIELD,
    REMOTE_TIMEOUT,
    ROBOT_NODE,
    ROUTES_PATH,
    SERIAL_BAUDRATE,
    SERIAL_PORT,
    STREAM_RETRY_DELAY,
    TICK_SECONDS,
    WEB_HOST,
    WEB_PORT,
)

logger = logging.getLogger(__name__)

PARAMS_FILE = Path(__file__).parent / "params.json"


@dataclass
class Parameters:
    """Runtime tunable parameters."""

    # Remote store
    database_url: str = DATABASE_URL
    auth_token: str = ""  # Database secret or ID token, empty = unauthenticated
    robot_node: str = ROBOT_NODE
    routes_path: str = ROUTES_PATH
    detection_field: str = DETECTION_FIELD
    remote_timeout_seconds: float = REMOTE_TIMEOUT
    stream_retry_seconds: float = STREAM_RETRY_DELAY

    # Serial device
    serial_port: str = SERIAL_PORT
    serial_baudrate: int = SERIAL_BAUDRATE
    serial_enabled: bool = True

    # Playback
    tick_seconds: float = TICK_SECONDS

    # Web interface
    web_host: str = WEB_HOST
    web_port: int = WEB_PORT

    @property
    def detection_path(self) -> str:
        return f"{self.robot_node}/{self.detection_field}"

    def update(self, **kwargs):
        """Update parameters from dict (e.g., from web API)."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                expected_type = type(getattr(self, key))
                try:
                    if expected_type is bool and isinstance(value, str):
                        value = value.strip().lower() in ("1", "true", "yes", "on")
                    setattr(self, key, expected_type(value))
                except (TypeError, ValueError):
                    logger.warning(f"Invalid value for {key}: {value}")

    def save(self, path: Path = PARAMS_FILE):
        """Persist to JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)
        logger.info(f"Parameters saved to {path}")

    @classmethod
    def load(cls, path: Path = PARAMS_FILE) -> Parameters:
        """Load from JSON file, or return defaults."""
        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                params = cls()
                params.update(**data)
                logger.info(f"Parameters loaded from {path}")
                return params
            except Exception as e:
                logger.warning(f"Failed to load {path}: {e}, using defaults")
        return cls()

    def to_dict(self) -> dict:
        """Convert to dict for JSON API."""
        return asdict(self)
