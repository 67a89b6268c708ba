"""
Remote layer - Firebase Realtime Database access.
"""

from .channel import RemoteChannel
from .feeds import DetectionFeed
from .firebase import FirebaseClient, apply_event

__all__ = ["DetectionFeed", "FirebaseClient", "RemoteChannel", "apply_event"]
