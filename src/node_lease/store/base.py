"""Store abstractions the lease controller depends on.

Design principles:
- The store owns ``resource_version``; callers only echo it back.
- ``update`` is a compare-and-swap on ``resource_version`` and must raise
  ``LeaseConflictError`` (never a generic error) when it is stale.
- ``get`` must raise ``LeaseNotFoundError`` (never a generic error) when
  the record does not exist.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from node_lease.lease.models import Lease


@runtime_checkable
class LeaseStore(Protocol):
    """Namespaced, uniquely keyed lease storage with optimistic concurrency."""

    def get(self, namespace: str, name: str) -> Lease:
        """Return the stored lease. Raises LeaseNotFoundError if absent."""

    def create(self, lease: Lease) -> Lease:
        """Store a new lease. Raises LeaseAlreadyExistsError if the key is taken."""

    def update(self, lease: Lease) -> Lease:
        """Replace a lease. Raises LeaseConflictError on a stale resource version."""


@runtime_checkable
class NodeIdentityLookup(Protocol):
    """Resolves a node name to the UID of its node object."""

    def resolve(self, name: str) -> str:
        """Return the node UID. Raises NodeLookupError if it cannot be resolved."""
