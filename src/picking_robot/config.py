"""
Configuration constants for the picking robot route runner.

Defaults for everything tunable live here; runtime overrides go
through params.Parameters.
"""

# =============================================================================
# REMOTE STATE STORE (Firebase Realtime Database)
# =============================================================================

DATABASE_URL = "https://v2v-communication-d46c6-default-rtdb.firebaseio.com"
ROBOT_NODE = "Picking_Robot"  # Command node shared with the robot
ROUTES_PATH = "routes6"  # Route catalogue
DETECTION_FIELD = "detection"  # Child of ROBOT_NODE: number or {status: number}

REMOTE_TIMEOUT = 10.0  # seconds per REST request
STREAM_RETRY_DELAY = 2.0  # seconds before re-opening a dropped stream

# =============================================================================
# SERIAL DEVICE
# =============================================================================

SERIAL_PORT = "/dev/ttyUSB0"
SERIAL_BAUDRATE = 9600
SERIAL_WRITE_TIMEOUT = 0.1  # seconds

# =============================================================================
# COMMAND CODES
# =============================================================================

DIRECTION_CODES = {
    "forward": "F",
    "backward": "B",
    "left": "L",
    "right": "R",
}
STOP_CODE = "S"

ACTION_CODES = {
    "pick": "P1",
    "place": "P0",
}
PICKING_CLEAR = "0"

# =============================================================================
# PLAYBACK
# =============================================================================

TICK_SECONDS = 1.0  # Countdown resolution
DEFAULT_ACTION_DURATION = 10  # seconds for pick/place moves without one
STATUS_LOG_INTERVAL = 5.0  # seconds between controller status lines

# =============================================================================
# WEB INTERFACE
# =============================================================================

WEB_HOST = "0.0.0.0"
WEB_PORT = 8080
