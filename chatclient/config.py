"""
config.py - protocol constants and client defaults.
"""

# --------------- Wire protocol ---------------
MAX_MSG_LEN = 1024      # bytes per frame, terminator included
MAX_NAME_LEN = 32       # bytes per display name, terminator excluded
TERMINATOR = b"\x00"
SENTINEL = "bye"
ENCODING = "utf-8"

# --------------- Address rules ---------------
MIN_PORT = 1024
MAX_PORT = 65535

# --------------- Client defaults ---------------
CONNECT_TIMEOUT = 10.0  # seconds
SEND_TIMEOUT = 5.0      # seconds a full send buffer may stall a write
RECV_SIZE = 4096
READ_SIZE = 4096

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
