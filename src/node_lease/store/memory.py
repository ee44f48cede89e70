"""In-process lease store and node registry.

Useful for tests and for embedding the controller next to a store that
lives in the same process. Every read and write copies the lease, so
callers can never mutate stored state through a returned reference.
"""

from __future__ import annotations

import threading
import uuid

from node_lease.core.exceptions import (
    LeaseAlreadyExistsError,
    LeaseConflictError,
    LeaseNotFoundError,
    NodeLookupError,
)
from node_lease.lease.models import Lease


class InMemoryLeaseStore:
    """Thread-safe dictionary-backed lease store.

    Resource versions come from a single store-wide counter, as in an
    etcd-backed API server, so they are unique across all keys.
    """

    def __init__(self):
        self._leases: dict[tuple[str, str], Lease] = {}
        self._lock = threading.Lock()
        self._revision = 0

    def _next_version(self) -> str:
        self._revision += 1
        return str(self._revision)

    def get(self, namespace: str, name: str) -> Lease:
        with self._lock:
            lease = self._leases.get((namespace, name))
            if lease is None:
                raise LeaseNotFoundError("lease not found", namespace=namespace, name=name)
            return lease.copy()

    def create(self, lease: Lease) -> Lease:
        key = (lease.namespace, lease.name)
        with self._lock:
            if key in self._leases:
                raise LeaseAlreadyExistsError("lease already exists", namespace=lease.namespace, name=lease.name)
            stored = lease.copy()
            stored.resource_version = self._next_version()
            self._leases[key] = stored
            return stored.copy()

    def update(self, lease: Lease) -> Lease:
        key = (lease.namespace, lease.name)
        with self._lock:
            current = self._leases.get(key)
            if current is None:
                raise LeaseNotFoundError("lease not found", namespace=lease.namespace, name=lease.name)
            if lease.resource_version != current.resource_version:
                raise LeaseConflictError(
                    "the object has been modified; please apply your changes to the latest version and try again",
                    namespace=lease.namespace,
                    name=lease.name,
                    details=f"resource version {lease.resource_version} != {current.resource_version}",
                )
            stored = lease.copy()
            stored.resource_version = self._next_version()
            self._leases[key] = stored
            return stored.copy()

    def delete(self, namespace: str, name: str) -> None:
        """Remove a lease, e.g. when its owning node is garbage collected."""
        with self._lock:
            if self._leases.pop((namespace, name), None) is None:
                raise LeaseNotFoundError("lease not found", namespace=namespace, name=name)

    def list_leases(self, namespace: str) -> list[Lease]:
        with self._lock:
            return [lease.copy() for (ns, _), lease in sorted(self._leases.items()) if ns == namespace]


class InMemoryNodeRegistry:
    """Maps node names to node UIDs."""

    def __init__(self, nodes: dict[str, str] | None = None):
        self._nodes: dict[str, str] = dict(nodes or {})
        self._lock = threading.Lock()

    def register(self, name: str, uid: str | None = None) -> str:
        node_uid = uid or str(uuid.uuid4())
        with self._lock:
            self._nodes[name] = node_uid
        return node_uid

    def unregister(self, name: str) -> None:
        with self._lock:
            self._nodes.pop(name, None)

    def resolve(self, name: str) -> str:
        with self._lock:
            uid = self._nodes.get(name)
        if uid is None:
            raise NodeLookupError("node not found", node_name=name)
        return uid
