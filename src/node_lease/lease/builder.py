"""Construction of the desired lease state for create and renew calls."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from node_lease.core.constants import NAMESPACE_NODE_LEASE, NODE_API_VERSION, NODE_KIND
from node_lease.lease.clock import Clock
from node_lease.lease.models import Lease, OwnerReference

if TYPE_CHECKING:
    from node_lease.store.base import NodeIdentityLookup


class LeaseBuilder:
    """Builds the lease a controller wants the store to hold.

    Only the bare minimum of fields is asserted: identity, duration,
    renew time and, once the node object is known, the owner reference.
    """

    def __init__(
        self,
        clock: Clock,
        holder_identity: str,
        lease_duration_seconds: int,
        *,
        namespace: str = NAMESPACE_NODE_LEASE,
        node_lookup: NodeIdentityLookup | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.clock = clock
        self.holder_identity = holder_identity
        self.lease_duration_seconds = lease_duration_seconds
        self.namespace = namespace
        self.node_lookup = node_lookup
        self.logger = logger or logging.getLogger(__name__)

    def build(self, base: Lease | None = None) -> Lease:
        """Return a new lease if ``base`` is None, else a renewed copy of ``base``.

        ``base`` is never mutated.
        """
        if base is None:
            lease = Lease(
                name=self.holder_identity,
                namespace=self.namespace,
                holder_identity=self.holder_identity,
                lease_duration_seconds=self.lease_duration_seconds,
            )
        else:
            lease = base.copy()
        lease.renew_time = self.clock.now()

        # The node object may not be registered yet when the lease is first
        # created, so keep trying on every build until the UID resolves.
        if not lease.owner_references:
            owner = self._resolve_owner()
            if owner is not None:
                lease.owner_references = [owner]

        return lease

    def _resolve_owner(self) -> OwnerReference | None:
        if self.node_lookup is None:
            return None
        # Any lookup failure only delays the owner reference; the lease is still written.
        try:
            uid = self.node_lookup.resolve(self.holder_identity)
        except Exception as e:
            self.logger.error(
                "failed to get node %r when trying to set owner ref to the node lease: %s",
                self.holder_identity,
                e,
            )
            return None
        return OwnerReference(
            name=self.holder_identity,
            uid=uid,
            kind=NODE_KIND,
            api_version=NODE_API_VERSION,
        )
