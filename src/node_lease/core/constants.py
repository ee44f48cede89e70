"""Constants and default values for node-lease.

This module centralizes the magic numbers used by the controller,
its stores and the CLI.
"""

# ==================== LEASE DEFAULTS ====================

# Namespace in which every node's lease lives
NAMESPACE_NODE_LEASE: str = "kube-node-lease"

DEFAULT_LEASE_DURATION_SECONDS: int = 40
DEFAULT_NODE_STATUS_UPDATE_FREQUENCY: float = 10.0  # Seconds

# ==================== RENEWAL & RETRY ====================

DEFAULT_RENEW_INTERVAL: float = 10.0  # Seconds between renewals unless status updates are more frequent
MAX_UPDATE_RETRIES: int = 5  # Immediate update attempts per renewal cycle
DEFAULT_BACKOFF_BASE_DELAY: float = 0.2  # First sleep after a failed ensure
MAX_BACKOFF: float = 7.0  # Cap for ensure backoff sleeps

# ==================== OWNER REFERENCE ====================

NODE_API_VERSION: str = "v1"
NODE_KIND: str = "Node"

# ==================== FILE STORE ====================

LEASES_DIRNAME: str = "leases"
NODES_DIRNAME: str = "nodes"
STORE_LOCK_FILENAME: str = ".store.lock"
STORE_LOCK_ATTEMPTS: int = 50  # Marker-file lock attempts where fcntl is unavailable
STORE_LOCK_RETRY_SLEEP_SECONDS: float = 0.02

# ==================== NODE SUMMARIES ====================

NETWORK_BANDWIDTH_ANNOTATION: str = "netsys.io/network-bandwidth"
BANDWIDTH_SUFFIX_MULTIPLIERS: dict[str, int] = {
    "K": 1000,
    "M": 1000000,
    "G": 1000000000,
    "T": 1000000000000,
}

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep
VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
