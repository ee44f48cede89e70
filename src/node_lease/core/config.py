"""Configuration dataclasses for node-lease.

These dataclasses centralize the controller's tunables for type safety
and easy testing. They can be created from command-line arguments or
used directly in code.
"""

from __future__ import annotations

import argparse
import logging
import math
import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from node_lease.core.constants import (
    DEFAULT_BACKOFF_BASE_DELAY,
    DEFAULT_LEASE_DURATION_SECONDS,
    DEFAULT_NODE_STATUS_UPDATE_FREQUENCY,
    DEFAULT_RENEW_INTERVAL,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    MAX_BACKOFF,
    MAX_UPDATE_RETRIES,
    NAMESPACE_NODE_LEASE,
)
from node_lease.core.exceptions import ConfigurationError

# DNS subdomain names (RFC 1123), which is what node and namespace names must be.
_DNS_SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")
_DNS_SUBDOMAIN_MAX_LENGTH = 253


def is_dns_subdomain(value: str) -> bool:
    """Return True if ``value`` is a lowercase RFC 1123 subdomain."""
    return bool(value) and len(value) <= _DNS_SUBDOMAIN_MAX_LENGTH and bool(_DNS_SUBDOMAIN_PATTERN.match(value))


@dataclass
class BackoffConfig:
    """Configuration for exponential backoff while ensuring the lease exists.

    Attributes:
        base_delay: First delay in seconds (default: 0.2)
        max_delay: Maximum delay cap in seconds (default: 7.0)
        exponential_base: Multiplier applied after every failure (default: 2)
    """

    base_delay: float = DEFAULT_BACKOFF_BASE_DELAY
    max_delay: float = MAX_BACKOFF
    exponential_base: int = 2

    def validate(self) -> None:
        if not self.base_delay > 0:
            raise ConfigurationError(
                "Backoff base delay must be positive",
                field="base_delay",
                details=f"got {self.base_delay}",
            )
        if self.max_delay < self.base_delay:
            raise ConfigurationError(
                "Backoff max delay must not be smaller than base delay",
                field="max_delay",
                details=f"max_delay={self.max_delay} < base_delay={self.base_delay}",
            )
        if self.exponential_base < 1:
            raise ConfigurationError("Backoff exponential base must be at least 1", field="exponential_base")


@dataclass
class LeaseConfig:
    """Configuration for a node lease controller.

    Attributes:
        holder_identity: Node name; also the lease's name in the namespace
        namespace: Namespace holding node leases (default: kube-node-lease)
        lease_duration_seconds: How long readers treat a renewal as valid
        node_status_update_frequency: External freshness requirement; can only
            shorten the renew interval
        default_renew_interval: Renew interval used when status updates are slower
        max_update_retries: Update attempts per renewal cycle
        backoff: Backoff used while ensuring the lease exists
    """

    holder_identity: str
    namespace: str = NAMESPACE_NODE_LEASE
    lease_duration_seconds: int = DEFAULT_LEASE_DURATION_SECONDS
    node_status_update_frequency: float = DEFAULT_NODE_STATUS_UPDATE_FREQUENCY
    default_renew_interval: float = DEFAULT_RENEW_INTERVAL
    max_update_retries: int = MAX_UPDATE_RETRIES
    backoff: BackoffConfig = field(default_factory=BackoffConfig)

    def validate(self) -> None:
        """Raise ConfigurationError if any field is unusable."""
        if not self.holder_identity or not self.holder_identity.strip():
            raise ConfigurationError("Holder identity must not be empty", field="holder_identity")
        if not is_dns_subdomain(self.holder_identity):
            raise ConfigurationError(
                "Holder identity must be a lowercase RFC 1123 subdomain",
                field="holder_identity",
                details=f"got {self.holder_identity!r}",
            )
        if not is_dns_subdomain(self.namespace):
            raise ConfigurationError(
                "Namespace must be a lowercase RFC 1123 subdomain",
                field="namespace",
                details=f"got {self.namespace!r}",
            )
        if self.lease_duration_seconds <= 0:
            raise ConfigurationError(
                "Lease duration must be positive",
                field="lease_duration_seconds",
                details=f"got {self.lease_duration_seconds}",
            )
        if self.node_status_update_frequency <= 0:
            raise ConfigurationError(
                "Node status update frequency must be positive",
                field="node_status_update_frequency",
                details=f"got {self.node_status_update_frequency}",
            )
        if self.default_renew_interval <= 0:
            raise ConfigurationError("Default renew interval must be positive", field="default_renew_interval")
        if self.max_update_retries < 1:
            raise ConfigurationError(
                "Max update retries must be at least 1",
                field="max_update_retries",
                details=f"got {self.max_update_retries}",
            )
        self.backoff.validate()

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> LeaseConfig:
        """Create configuration from parsed command-line arguments."""
        return cls(
            holder_identity=args.holder_identity,
            namespace=getattr(args, "namespace", NAMESPACE_NODE_LEASE),
            lease_duration_seconds=getattr(args, "lease_duration", DEFAULT_LEASE_DURATION_SECONDS),
            node_status_update_frequency=getattr(
                args, "node_status_update_frequency", DEFAULT_NODE_STATUS_UPDATE_FREQUENCY
            ),
            max_update_retries=getattr(args, "max_update_retries", MAX_UPDATE_RETRIES),
            backoff=BackoffConfig(
                base_delay=getattr(args, "backoff_base_delay", DEFAULT_BACKOFF_BASE_DELAY),
                max_delay=getattr(args, "backoff_max_delay", MAX_BACKOFF),
            ),
        )


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        format: "text" or "json"
        directory: Directory for rotating log files; console only when None
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    format: str = "text"
    directory: str | None = None
    file_max_bytes: int = LOG_FILE_MAX_BYTES
    file_backup_count: int = LOG_FILE_BACKUP_COUNT


def compute_renew_interval(default_interval: float, node_status_update_frequency: float) -> float:
    """Return the renew interval for a controller.

    Operators can shorten the window after which nodes are marked unknown by
    lowering the status update frequency, so the lease must be renewed at
    least that often. A slower status frequency never lengthens renewal.
    """
    return min(default_interval, node_status_update_frequency)


def _parse_env_numeric(value: str | None, cast: Callable[[str], Any]) -> Any | None:
    """Parse an environment value, returning None when invalid."""
    if value is None:
        return None
    try:
        parsed = cast(value)
    except (TypeError, ValueError):
        return None
    if isinstance(parsed, float) and not math.isfinite(parsed):
        return None
    return parsed


_ENV_OVERRIDES: tuple[tuple[str, str, Callable[[str], Any]], ...] = (
    ("NODE_LEASE_DURATION_SECONDS", "lease_duration_seconds", int),
    ("NODE_STATUS_UPDATE_FREQUENCY", "node_status_update_frequency", float),
    ("NODE_LEASE_MAX_UPDATE_RETRIES", "max_update_retries", int),
)

_BACKOFF_ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("NODE_LEASE_BACKOFF_BASE_DELAY", "base_delay"),
    ("NODE_LEASE_BACKOFF_MAX_DELAY", "max_delay"),
)


def effective_lease_config(config: LeaseConfig, logger: logging.Logger | None = None) -> LeaseConfig:
    """Return ``config`` with env-var overrides applied.

    The input is never mutated. Invalid values are logged and ignored.
    """
    log = logger or logging.getLogger(__name__)
    updates: dict[str, Any] = {}

    for env_name, attr, cast in _ENV_OVERRIDES:
        parsed = _parse_env_numeric(os.environ.get(env_name), cast)
        if parsed is not None and parsed > 0:
            updates[attr] = parsed
        elif env_name in os.environ:
            log.warning(
                f"Ignoring invalid {env_name}={os.environ.get(env_name)!r}; using {getattr(config, attr)}"
            )

    backoff_updates: dict[str, float] = {}
    for env_name, attr in _BACKOFF_ENV_OVERRIDES:
        parsed = _parse_env_numeric(os.environ.get(env_name), float)
        if parsed is not None and parsed > 0:
            backoff_updates[attr] = parsed
        elif env_name in os.environ:
            log.warning(
                f"Ignoring invalid {env_name}={os.environ.get(env_name)!r}; using {getattr(config.backoff, attr)}"
            )

    backoff = replace(config.backoff, **backoff_updates)
    # Only repair windows broken by an override; explicit values are left to validate().
    if backoff_updates and backoff.max_delay < backoff.base_delay:
        log.warning(
            f"Ignoring invalid backoff window (max_delay={backoff.max_delay} < base_delay={backoff.base_delay}); "
            f"using max_delay={backoff.base_delay}"
        )
        backoff = replace(backoff, max_delay=backoff.base_delay)

    return replace(config, backoff=backoff, **updates)
