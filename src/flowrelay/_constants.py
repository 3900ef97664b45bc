"""Internal constants shared across the library."""

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# Live entries older than this are treated as gone.
DEFAULT_STALE_AFTER_MS = 5000

DEFAULT_MAX_BODY_BYTES = 1024 * 1024

REPLAY_ID_PREFIX = "replay_"

# Batch payloads carry their records under this key.
BATCH_KEY = "players"

# Form field the game-side tracker wraps its JSON in.
FORM_DATA_FIELD = "data"
