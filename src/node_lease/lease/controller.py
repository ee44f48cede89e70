"""Node lease controller.

Creates this node's lease on first run and renews it once per renew
interval. Creation retries forever with exponential backoff, since a node
without a lease cannot signal liveness at all. Renewal retries a bounded
number of times per cycle; a missed renewal is corrected by the next cycle.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from node_lease.core.config import BackoffConfig, LeaseConfig, compute_renew_interval
from node_lease.core.constants import DEFAULT_RENEW_INTERVAL, MAX_UPDATE_RETRIES, NAMESPACE_NODE_LEASE
from node_lease.core.exceptions import (
    ConfigurationError,
    LeaseConflictError,
    LeaseNotFoundError,
    LeaseRenewalError,
)
from node_lease.core.logging import with_log_context
from node_lease.lease.backoff import ExponentialBackoff
from node_lease.lease.builder import LeaseBuilder
from node_lease.lease.clock import Clock
from node_lease.lease.models import Lease

if TYPE_CHECKING:
    from node_lease.store.base import LeaseStore, NodeIdentityLookup


class LeaseController:
    """
    Creates and renews the lease for one node.

    One controller drives one sequential loop; it holds no locks because
    concurrent writers to the same lease are detected through the store's
    resource version and resolved by refetching.

    Example:
        controller = LeaseController(
            RealClock(), store, "node-a", 40, node_status_update_frequency=10.0
        )
        stop = threading.Event()
        controller.run(stop)
    """

    def __init__(
        self,
        clock: Clock,
        store: LeaseStore | None,
        holder_identity: str,
        lease_duration_seconds: int,
        node_status_update_frequency: float,
        on_repeated_heartbeat_failure: Callable[[], None] | None = None,
        *,
        node_lookup: NodeIdentityLookup | None = None,
        namespace: str = NAMESPACE_NODE_LEASE,
        max_update_retries: int = MAX_UPDATE_RETRIES,
        backoff: BackoffConfig | None = None,
        default_renew_interval: float = DEFAULT_RENEW_INTERVAL,
        logger: logging.Logger | None = None,
    ):
        self.clock = clock
        self.store = store
        self.holder_identity = holder_identity
        self.namespace = namespace
        self.lease_duration_seconds = lease_duration_seconds
        self.renew_interval = compute_renew_interval(default_renew_interval, node_status_update_frequency)
        self.max_update_retries = max_update_retries
        self.backoff_config = backoff or BackoffConfig()
        self.on_repeated_heartbeat_failure = on_repeated_heartbeat_failure
        self.logger = with_log_context(
            logger or logging.getLogger(__name__),
            holder_identity=holder_identity,
            namespace=namespace,
        )
        self.builder = LeaseBuilder(
            clock,
            holder_identity,
            lease_duration_seconds,
            namespace=namespace,
            node_lookup=node_lookup,
            logger=self.logger,
        )

        self._sync_count = 0
        self._last_renew_time: datetime | None = None

    @classmethod
    def from_config(
        cls,
        config: LeaseConfig,
        clock: Clock,
        store: LeaseStore | None,
        on_repeated_heartbeat_failure: Callable[[], None] | None = None,
        *,
        node_lookup: NodeIdentityLookup | None = None,
        logger: logging.Logger | None = None,
    ) -> LeaseController:
        """Create a controller from a validated ``LeaseConfig``."""
        config.validate()
        return cls(
            clock,
            store,
            config.holder_identity,
            config.lease_duration_seconds,
            config.node_status_update_frequency,
            on_repeated_heartbeat_failure,
            node_lookup=node_lookup,
            namespace=config.namespace,
            max_update_retries=config.max_update_retries,
            backoff=config.backoff,
            default_renew_interval=config.default_renew_interval,
            logger=logger,
        )

    @property
    def sync_count(self) -> int:
        """Number of completed sync cycles."""
        return self._sync_count

    @property
    def last_renew_time(self) -> datetime | None:
        """Renew time of the last lease this controller created or renewed."""
        return self._last_renew_time

    def run(self, stop_event: threading.Event) -> None:
        """Sync once per renew interval until ``stop_event`` is set.

        The event is checked between cycles only; an in-flight cycle,
        including its backoff sleeps, always runs to completion.
        """
        if self.store is None:
            self.logger.info("node lease controller has no lease store, will not claim or renew leases")
            return

        self.logger.info(f"Starting node lease controller (renew interval {self.renew_interval}s)")
        while not stop_event.is_set():
            self.sync()
            if stop_event.wait(self.renew_interval):
                break
        self.logger.info("Node lease controller stopped")

    def sync(self) -> None:
        """Run one ensure-then-renew cycle. Never raises store errors."""
        lease, created = self.backoff_ensure_lease()
        # A freshly created lease already carries the current renew time.
        if created:
            self._last_renew_time = lease.renew_time
        else:
            try:
                self.retry_update_lease(lease)
            except LeaseRenewalError as e:
                self.logger.error(f"{e}, will retry after {self.renew_interval}s")
        self._sync_count += 1

    def _require_store(self) -> LeaseStore:
        if self.store is None:
            raise ConfigurationError("node lease controller has no lease store", field="store")
        return self.store

    def backoff_ensure_lease(self) -> tuple[Lease, bool]:
        """Ensure the lease exists, retrying with backoff until it does.

        Returns the lease and True if this call created it. Every failure is
        retried: there is no attempt limit and no error class that ends the
        loop. The backoff sequence starts over on every call.

        Raises:
            ConfigurationError: If the controller has no lease store
        """
        self._require_store()
        backoff = ExponentialBackoff(self.backoff_config)
        while True:
            try:
                return self.ensure_lease()
            except Exception as e:
                delay = backoff.next_delay()
                self.logger.error(f"failed to ensure node lease exists, will retry in {delay}s, error: {e}")
                self.clock.sleep(delay)

    def ensure_lease(self) -> tuple[Lease, bool]:
        """Get the lease, creating it if it does not exist.

        Returns the lease and True if this call created it. Any error other
        than not-found (including a failed create) is raised to the caller;
        ``backoff_ensure_lease`` retries them all.

        Raises:
            ConfigurationError: If the controller has no lease store
        """
        store = self._require_store()
        try:
            return store.get(self.namespace, self.holder_identity), False
        except LeaseNotFoundError:
            pass

        lease = store.create(self.builder.build(None))
        self.logger.info(f"Created node lease {self.namespace}/{self.holder_identity}")
        return lease, True

    def retry_update_lease(self, base: Lease) -> Lease:
        """Renew ``base`` with up to ``max_update_retries`` update attempts.

        A conflict refetches the latest lease as the new base and uses up an
        attempt. From the second failed attempt on, any other failure
        triggers the repeated-failure callback.

        Raises:
            ConfigurationError: If the controller has no lease store
            LeaseRenewalError: If every attempt failed
        """
        store = self._require_store()
        last_error: Exception | None = None
        for attempt in range(self.max_update_retries):
            try:
                lease = store.update(self.builder.build(base))
            except LeaseConflictError as e:
                last_error = e
                self.logger.error(f"failed to update node lease, error: {e}")
                # The stored lease moved on; rebuild on top of the latest version.
                base, _ = self.backoff_ensure_lease()
                continue
            except Exception as e:
                last_error = e
                self.logger.error(f"failed to update node lease, error: {e}")
                if attempt > 0:
                    self._notify_repeated_failure()
                continue

            self._last_renew_time = lease.renew_time
            if attempt > 0:
                self.logger.info(f"Renewed node lease on attempt {attempt + 1}/{self.max_update_retries}")
            else:
                self.logger.debug("Renewed node lease")
            return lease

        raise LeaseRenewalError(self.max_update_retries, last_error=last_error)

    def _notify_repeated_failure(self) -> None:
        if self.on_repeated_heartbeat_failure is None:
            return
        try:
            self.on_repeated_heartbeat_failure()
        except Exception as e:
            self.logger.error(f"repeated heartbeat failure callback raised: {e}")
