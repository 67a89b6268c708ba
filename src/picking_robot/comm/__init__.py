"""
Communication layer - serial protocol with the robot's microcontroller.
"""

from .serial_link import SerialLink

__all__ = ["SerialLink"]
