"""Game configuration constants."""

# ---- Network ----
SERVER_HOST = "127.0.0.1"
SERVER_PORT = 8080                # Authoritative UDP server
CLIENT_HOST = "127.0.0.1"
CLIENT_BASE_PORT = 8081           # Player N binds CLIENT_BASE_PORT + N - 1
SPECTATOR_WS_HOST = "0.0.0.0"
SPECTATOR_WS_PORT = 8090          # Viewer-facing WS feed (None disables)
STATUS_HTTP_HOST = "127.0.0.1"
STATUS_HTTP_PORT = 8091           # /health and /state (None disables)
MAX_DATAGRAM_BYTES = 1024

# ---- Reliability ----
RETRY_LIMIT = 3                   # Send attempts per message
RETRY_TIMEOUT_SEC = 0.5           # Wait for ACK per attempt
MAX_SEQUENCE = 2**32 - 1          # Largest sequence number on the wire

# ---- Game rules ----
GRID_WIDTH = 10
GRID_HEIGHT = 10
PLAYER_CAP = 3
GAME_DURATION_SEC = 60
TREASURE_VALUE = 10

# Fixed layout; a cell never holds both a treasure and a trap
DEFAULT_TREASURES = [(2, 3), (5, 5), (7, 1), (1, 8), (9, 9)]
DEFAULT_TRAPS = [(4, 4), (6, 2), (3, 7)]

# ---- Timing ----
TICK_INTERVAL_SEC = 1.0           # Countdown period
SESSION_TIMEOUT_SEC = 120.0       # Evict idle sessions (None/0 disables)
POLL_INTERVAL_SEC = 0.1           # Client key poll + redraw

# ---- Wire literals ----
CONNECT = "connect"
MOVE_PREFIX = "MOVE:"
ACK_PREFIX = "ACK:"
SNAPSHOT_TAG = "GAME_STATE"
TIME_PREFIX = "TIME:"
