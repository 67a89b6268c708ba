"""
Exception types shared across layers.
"""


class PickingRobotError(Exception):
    """Base class for route runner errors."""


class InvalidPlayTarget(PickingRobotError):
    """Play requested for a route that is unknown or has no moves."""


class RouteFormatError(PickingRobotError):
    """A stored route or move record could not be parsed."""


class RemoteChannelError(PickingRobotError):
    """A request against the remote state store failed."""


class SerialChannelError(PickingRobotError):
    """The serial device is absent or a write to it failed."""
