"""
Tests for LeaseBuilder: fresh leases, renewed copies and owner references
"""

import logging
from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from node_lease.core.exceptions import LeaseStoreError, NodeLookupError
from node_lease.lease.builder import LeaseBuilder
from node_lease.lease.clock import FakeClock
from node_lease.lease.models import Lease, OwnerReference
from node_lease.store.memory import InMemoryNodeRegistry

START = datetime(2024, 1, 1, tzinfo=UTC)


def _builder(clock=None, node_lookup=None):
    return LeaseBuilder(
        clock or FakeClock(START),
        "node-a",
        40,
        namespace="kube-node-lease",
        node_lookup=node_lookup,
    )


class TestBuildNew:
    """Test building a lease from scratch"""

    def test_new_lease_fields(self):
        lease = _builder().build(None)

        assert lease.name == "node-a"
        assert lease.namespace == "kube-node-lease"
        assert lease.holder_identity == "node-a"
        assert lease.lease_duration_seconds == 40
        assert lease.renew_time == START
        assert lease.resource_version is None

    def test_new_lease_without_lookup_has_no_owner(self):
        assert _builder().build(None).owner_references == []

    def test_new_lease_with_known_node_gets_owner(self):
        registry = InMemoryNodeRegistry({"node-a": "uid-1"})

        lease = _builder(node_lookup=registry).build(None)

        assert lease.owner_references == [OwnerReference(name="node-a", uid="uid-1", kind="Node", api_version="v1")]


class TestBuildFromBase:
    """Test building a renewed copy of an existing lease"""

    def test_renewed_copy_gets_current_time(self):
        clock = FakeClock(START)
        builder = _builder(clock)
        base = builder.build(None)
        base.resource_version = "7"

        clock.step(10)
        renewed = builder.build(base)

        assert renewed.renew_time == datetime(2024, 1, 1, 0, 0, 10, tzinfo=UTC)
        assert renewed.resource_version == "7"

    def test_base_is_never_mutated(self):
        clock = FakeClock(START)
        registry = InMemoryNodeRegistry()
        builder = _builder(clock, registry)
        base = builder.build(None)

        registry.register("node-a", "uid-1")
        clock.step(10)
        renewed = builder.build(base)
        renewed.owner_references.append(OwnerReference(name="other", uid="uid-2"))

        assert base.renew_time == START
        assert base.owner_references == []

    def test_preserves_fields_not_owned_by_builder(self):
        base = Lease(
            name="node-a",
            namespace="kube-node-lease",
            holder_identity="node-a",
            lease_duration_seconds=99,
            resource_version="3",
        )

        renewed = _builder().build(base)

        assert renewed.lease_duration_seconds == 99


class TestOwnerReference:
    """Test the set-once owner reference"""

    def test_existing_owner_is_not_replaced(self):
        registry = InMemoryNodeRegistry({"node-a": "uid-1"})
        builder = _builder(node_lookup=registry)
        base = builder.build(None)

        registry.register("node-a", "uid-2")
        renewed = builder.build(base)

        assert [ref.uid for ref in renewed.owner_references] == ["uid-1"]

    def test_existing_owner_skips_lookup(self):
        lookup = Mock()
        lookup.resolve.return_value = "uid-1"
        builder = _builder(node_lookup=lookup)
        base = builder.build(None)

        builder.build(base)
        builder.build(base)

        assert lookup.resolve.call_count == 1

    def test_lookup_failure_is_not_fatal(self, caplog):
        registry = InMemoryNodeRegistry()
        builder = _builder(node_lookup=registry)

        with caplog.at_level(logging.ERROR):
            lease = builder.build(None)

        assert lease.owner_references == []
        assert "failed to get node 'node-a' when trying to set owner ref to the node lease" in caplog.text

    def test_owner_set_once_node_appears(self):
        """A later build fills in the owner once the node is registered"""
        registry = InMemoryNodeRegistry()
        builder = _builder(node_lookup=registry)
        base = builder.build(None)

        registry.register("node-a", "uid-9")
        renewed = builder.build(base)

        assert renewed.has_owner
        assert renewed.owner_references[0].uid == "uid-9"

    def test_store_error_during_lookup_is_not_fatal(self):
        lookup = Mock()
        lookup.resolve.side_effect = LeaseStoreError("api unavailable")

        lease = _builder(node_lookup=lookup).build(None)

        assert lease.owner_references == []

    def test_lookup_error_carries_node_name(self):
        lookup = Mock()
        lookup.resolve.side_effect = NodeLookupError("node not found", node_name="node-a")

        lease = _builder(node_lookup=lookup).build(None)

        assert not lease.has_owner
        lookup.resolve.assert_called_once_with("node-a")

    @pytest.mark.parametrize(
        "error", [ConnectionError("connection reset"), TimeoutError("timed out"), RuntimeError("decode failed")]
    )
    def test_any_lookup_error_is_not_fatal(self, error, caplog):
        lookup = Mock()
        lookup.resolve.side_effect = error

        with caplog.at_level(logging.ERROR):
            lease = _builder(node_lookup=lookup).build(None)

        assert lease.owner_references == []
        assert lease.holder_identity == "node-a"
        assert str(error) in caplog.text
