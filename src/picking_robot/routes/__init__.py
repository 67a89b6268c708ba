"""
Routes layer - stored route model and catalog.
"""

from .catalog import RouteCatalog, parse_route
from .models import ActionMove, Move, MovementMove, Route, parse_move

__all__ = [
    "ActionMove",
    "Move",
    "MovementMove",
    "Route",
    "RouteCatalog",
    "parse_move",
    "parse_route",
]
