"""
Control Layer - Execution.

Route playback engine and the components it drives.
"""

from .controller import Controller
from .detection import DetectionMonitor, DetectionReading, parse_detection
from .dispatcher import CommandDispatcher
from .engine import ExecutionEngine
from .state import EngineStatus, ExecutionSnapshot, ExecutionState, PauseReason
from .timer import MoveTimer

__all__ = [
    "CommandDispatcher",
    "Controller",
    "DetectionMonitor",
    "DetectionReading",
    "EngineStatus",
    "ExecutionEngine",
    "ExecutionSnapshot",
    "ExecutionState",
    "MoveTimer",
    "PauseReason",
    "parse_detection",
]
