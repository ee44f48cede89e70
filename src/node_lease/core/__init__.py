"""Core module - Foundation components with no internal dependencies.

This module provides the basic building blocks used throughout the package:
- Version information
- Custom exceptions
- Configuration dataclasses
- Constants and defaults
- Logging setup
"""

from node_lease.core.version import __version__

from node_lease.core.config import (
    BackoffConfig,
    LeaseConfig,
    LogConfig,
    compute_renew_interval,
    effective_lease_config,
)
from node_lease.core.constants import (
    DEFAULT_BACKOFF_BASE_DELAY,
    DEFAULT_LEASE_DURATION_SECONDS,
    DEFAULT_NODE_STATUS_UPDATE_FREQUENCY,
    DEFAULT_RENEW_INTERVAL,
    MAX_BACKOFF,
    MAX_UPDATE_RETRIES,
    NAMESPACE_NODE_LEASE,
)
from node_lease.core.exceptions import (
    ConfigurationError,
    LeaseAlreadyExistsError,
    LeaseConflictError,
    LeaseNotFoundError,
    LeaseRenewalError,
    LeaseStoreError,
    NodeLeaseError,
    NodeLookupError,
)
from node_lease.core.logging import JSONFormatter, setup_logging, with_log_context

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "NodeLeaseError",
    "ConfigurationError",
    "LeaseStoreError",
    "LeaseNotFoundError",
    "LeaseAlreadyExistsError",
    "LeaseConflictError",
    "NodeLookupError",
    "LeaseRenewalError",
    # Config
    "BackoffConfig",
    "LeaseConfig",
    "LogConfig",
    "compute_renew_interval",
    "effective_lease_config",
    # Constants
    "NAMESPACE_NODE_LEASE",
    "DEFAULT_RENEW_INTERVAL",
    "DEFAULT_LEASE_DURATION_SECONDS",
    "DEFAULT_NODE_STATUS_UPDATE_FREQUENCY",
    "MAX_UPDATE_RETRIES",
    "DEFAULT_BACKOFF_BASE_DELAY",
    "MAX_BACKOFF",
    # Logging
    "JSONFormatter",
    "setup_logging",
    "with_log_context",
]
