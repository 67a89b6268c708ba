"""
Web Layer - Remote control interface.

Provides:
- Playback control (play / pause / resume / stop)
- Live status over WebSocket
- Route list
- Parameter tuning
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
