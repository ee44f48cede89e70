"""Lease stores and node identity lookups.

This package defines the store contract the controller relies on and
ships in-memory and file-backed implementations of it.
"""

from node_lease.store.base import LeaseStore, NodeIdentityLookup
from node_lease.store.file import FileLeaseStore, FileNodeRegistry
from node_lease.store.memory import InMemoryLeaseStore, InMemoryNodeRegistry

__all__ = [
    "FileLeaseStore",
    "FileNodeRegistry",
    "InMemoryLeaseStore",
    "InMemoryNodeRegistry",
    "LeaseStore",
    "NodeIdentityLookup",
]
