"""Constants for certvault."""

# Configuration file looked up in the working directory
CONFIG_FILE = "certvault.yaml"

# Supported object store providers
PROVIDERS = ("fs", "azure", "s3")

# Lock protocol defaults
DEFAULT_LOCK_STALE_SECONDS = 60.0   # Lock blobs older than this are reclaimed
DEFAULT_LOCK_POLL_SECONDS = 1.0     # Sleep between acquisition attempts
DEFAULT_LOCK_PREFIX = "locks"       # Namespace for lock blobs
LOCK_SUFFIX = ".lock"

# Version
CERTVAULT_VERSION = "0.1.0"
