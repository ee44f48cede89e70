"""Lease subsystem: record model, builder and renewal controller.

Import order matters: models and clock have no intra-package
dependencies and must load before the builder and controller.
"""

from node_lease.lease.models import Lease, OwnerReference, format_micro_time, parse_micro_time
from node_lease.lease.clock import Clock, FakeClock, RealClock
from node_lease.lease.backoff import ExponentialBackoff
from node_lease.lease.builder import LeaseBuilder
from node_lease.lease.controller import LeaseController

__all__ = [
    "Clock",
    "ExponentialBackoff",
    "FakeClock",
    "Lease",
    "LeaseBuilder",
    "LeaseController",
    "OwnerReference",
    "RealClock",
    "format_micro_time",
    "parse_micro_time",
]
