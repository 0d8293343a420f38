"""Constants for dirmutex."""

# Lock namespace layout
DEFAULT_ROOT = ".locks"
LOCK_SUFFIX = ".lock"
METADATA_FILE = "metadata"
TOMBSTONE_PREFIX = ".removing-"

# Staleness and backoff defaults (seconds)
LOCK_TIMEOUT = 3600  # 1 hour
INITIAL_WAIT = 0.1
MAX_WAIT = 10.0
BACKOFF_MULTIPLIER = 1.5

# Caller-facing timeouts (seconds)
ACQUIRE_TIMEOUT = 30.0
WAIT_TIMEOUT = 60.0
POLL_INTERVAL = 1.0

# Config file and environment
CONFIG_FILE = "dirmutex.toml"
ENV_PREFIX = "DIRMUTEX_"
