TICKS_PER_SEC = 60

# Seconds between level sync requests while tracking an observer.
SYNC_INTERVAL = 1.0 / TICKS_PER_SEC

# Distance about the observer that we are interested in seeing things.
VIEW_RADIUS = 15.0

# Size of region blocks (x and z) and their height (y).
REGION_SIZE = 10
REGION_HEIGHT = 32
# Height of the generated ground in a fresh region.
GROUND_HEIGHT = 1

# Brick id used when materializing and when adding content.
BRICK = 1

SERVER_IP = 'localhost'
SERVER_PORT = 20226
SERVER_AUTHKEY = b'password'

# Seconds the server select loop waits before looking for new work.
SERVER_SELECT_TIMEOUT = 0.5

# Enable ANSI colors in logs.
LOG_COLOR = True

# Minimum level printed: DEBUG, INFO, WARN or ERROR.
LOG_LEVEL = "INFO"

# Log every outgoing sync request (one per tick while tracking).
LOG_SYNC = False

# Mesh size of a single brick (half-width of the cube).
BRICK_HALF_SIZE = 0.5

# Largest view radius the server will honour; bigger requests are clamped.
MAX_VIEW_RADIUS = 64.0
