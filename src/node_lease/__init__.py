"""
node-lease - Node liveness lease controller

Creates a per-node Lease record in a shared store and renews it on a
fixed interval so failure detectors can tell the node is alive.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from node_lease.core.version import __version__

__all__ = ["__version__", "LeaseController", "main"]

if TYPE_CHECKING:
    from node_lease.cli.main import main
    from node_lease.lease.controller import LeaseController


def __getattr__(name: str) -> Any:
    if name == "main":
        from node_lease.cli.main import main

        return main
    if name == "LeaseController":
        from node_lease.lease.controller import LeaseController

        return LeaseController
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
