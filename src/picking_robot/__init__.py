"""
Picking robot route runner.

Plays stored pick/place routes on a mobile robot through a Firebase
command node and a serial link, pausing for obstacles.
"""

__version__ = "0.1.0"
