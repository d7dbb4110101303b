"""Module defining various global constants."""

# icepersist version
VERSION = "1.0.0"

# Special exit code for when icepersist itself fails.
ERROR_CODE = 254

# Chunk key layout: marker byte, home byte, 4-byte vector group, 4-byte chunk index.
CHUNK_MARKER = 0x03
KEY_PREFIX_LEN = 1 + 1 + 4 + 4

# Chunks of imported objects are 4 MiB each.
LOG_CHUNK_SIZE = 22
CHUNK_SIZE = 1 << LOG_CHUNK_SIZE

# Delay between attempts of a failed remote I/O operation.
RETRY_DELAY_MS = 500

# Telemetry tag for I/O against the remote file system.
MEDIUM = "remote"

# Prefix of the per-node ice directory name.
ICE_DIR_PREFIX = "ice"
