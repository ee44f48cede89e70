"""Pytest configuration and fixtures for node-lease tests"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest

from node_lease.core.config import BackoffConfig
from node_lease.lease.clock import FakeClock
from node_lease.lease.controller import LeaseController
from node_lease.lease.models import Lease
from node_lease.store.memory import InMemoryLeaseStore, InMemoryNodeRegistry

HOLDER = "node-a"
NODE_UID = "6b0f2d3e-0000-4000-8000-000000000001"


class ScriptedLeaseStore:
    """Wraps a real store and injects queued errors before delegating.

    Each ``*_errors`` list is consumed front to back; a call with an empty
    queue is passed to the wrapped store. Every call is recorded in ``calls``.
    """

    def __init__(self, inner: InMemoryLeaseStore):
        self.inner = inner
        self.get_errors: list[Exception] = []
        self.create_errors: list[Exception] = []
        self.update_errors: list[Exception] = []
        self.calls: list[str] = []
        self.created: list[Lease] = []
        self.updated: list[Lease] = []

    def get(self, namespace: str, name: str) -> Lease:
        self.calls.append("get")
        if self.get_errors:
            raise self.get_errors.pop(0)
        return self.inner.get(namespace, name)

    def create(self, lease: Lease) -> Lease:
        self.calls.append("create")
        if self.create_errors:
            raise self.create_errors.pop(0)
        created = self.inner.create(lease)
        self.created.append(created)
        return created

    def update(self, lease: Lease) -> Lease:
        self.calls.append("update")
        if self.update_errors:
            raise self.update_errors.pop(0)
        updated = self.inner.update(lease)
        self.updated.append(updated)
        return updated

    def count(self, call: str) -> int:
        return self.calls.count(call)


@pytest.fixture
def fake_clock():
    """Deterministic clock starting at 2024-01-01T00:00:00Z"""
    return FakeClock(datetime(2024, 1, 1, tzinfo=UTC))


@pytest.fixture
def memory_store():
    return InMemoryLeaseStore()


@pytest.fixture
def scripted_store(memory_store):
    return ScriptedLeaseStore(memory_store)


@pytest.fixture
def node_registry():
    """Registry that already knows the test node"""
    return InMemoryNodeRegistry({HOLDER: NODE_UID})


@pytest.fixture
def make_controller(fake_clock, scripted_store, node_registry):
    """Factory for controllers wired to the fake clock and scripted store"""

    def _make(**overrides) -> LeaseController:
        kwargs = {
            "clock": fake_clock,
            "store": scripted_store,
            "holder_identity": HOLDER,
            "lease_duration_seconds": 40,
            "node_status_update_frequency": 10.0,
            "on_repeated_heartbeat_failure": None,
            "node_lookup": node_registry,
            "backoff": BackoffConfig(base_delay=0.2, max_delay=7.0),
            "logger": logging.getLogger("node_lease.tests"),
        }
        kwargs.update(overrides)
        return LeaseController(**kwargs)

    return _make


@pytest.fixture
def restore_root_logging():
    """Restore root logger handlers after tests that call setup_logging"""
    saved_handlers = logging.root.handlers[:]
    saved_level = logging.root.level
    yield
    for handler in logging.root.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
            logging.root.removeHandler(handler)
    for handler in saved_handlers:
        if handler not in logging.root.handlers:
            logging.root.addHandler(handler)
    logging.root.setLevel(saved_level)
