"""CLI argument parsing."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

import argcomplete

from node_lease.core.constants import (
    DEFAULT_BACKOFF_BASE_DELAY,
    DEFAULT_LEASE_DURATION_SECONDS,
    DEFAULT_NODE_STATUS_UPDATE_FREQUENCY,
    MAX_BACKOFF,
    MAX_UPDATE_RETRIES,
    NAMESPACE_NODE_LEASE,
    VALID_LOG_LEVELS,
)
from node_lease.core.version import __version__


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {parsed}")
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from None
    if not parsed > 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {value}")
    return parsed


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=VALID_LOG_LEVELS,
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format; json emits one object per line (default: text)",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Also write rotating log files to this directory",
    )


def _add_store_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--store-dir",
        required=True,
        help="Root directory of the file-backed lease store",
    )
    parser.add_argument(
        "--namespace",
        default=NAMESPACE_NODE_LEASE,
        help=f"Lease namespace (default: {NAMESPACE_NODE_LEASE})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="node-lease",
        description="Node lease controller - create and renew a node's liveness lease",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register the node object so the lease gets an owner reference
  node-lease register-node node-a --store-dir /var/lib/node-lease

  # Renew node-a's lease every 10s until interrupted
  node-lease run node-a --store-dir /var/lib/node-lease

  # Renew more often to match a 4s status update frequency
  node-lease run node-a --store-dir /var/lib/node-lease --node-status-update-frequency 4

  # One ensure/renew cycle, JSON logs
  node-lease run node-a --store-dir /var/lib/node-lease --once --log-format json

  # Inspect the stored lease
  node-lease show node-a --store-dir /var/lib/node-lease --format json

  # Per-node pod and bandwidth summary
  node-lease summarize --pods pods.json --nodes nodes.json --format table

Environment overrides:
  NODE_LEASE_DURATION_SECONDS, NODE_STATUS_UPDATE_FREQUENCY,
  NODE_LEASE_MAX_UPDATE_RETRIES, NODE_LEASE_BACKOFF_BASE_DELAY,
  NODE_LEASE_BACKOFF_MAX_DELAY, LOG_LEVEL (also read from a .env file)
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    run = subparsers.add_parser("run", help="Create and periodically renew a node lease")
    run.add_argument("holder_identity", metavar="HOLDER", help="Node name holding the lease")
    _add_store_arguments(run)
    run.add_argument(
        "--lease-duration",
        type=_positive_int,
        default=DEFAULT_LEASE_DURATION_SECONDS,
        help=f"Lease duration in seconds (default: {DEFAULT_LEASE_DURATION_SECONDS})",
    )
    run.add_argument(
        "--node-status-update-frequency",
        type=_positive_float,
        default=DEFAULT_NODE_STATUS_UPDATE_FREQUENCY,
        help="Status update frequency in seconds; the lease is renewed at least this often "
        f"(default: {DEFAULT_NODE_STATUS_UPDATE_FREQUENCY})",
    )
    run.add_argument(
        "--max-update-retries",
        type=_positive_int,
        default=MAX_UPDATE_RETRIES,
        help=f"Update attempts per renewal cycle (default: {MAX_UPDATE_RETRIES})",
    )
    run.add_argument(
        "--backoff-base-delay",
        type=_positive_float,
        default=DEFAULT_BACKOFF_BASE_DELAY,
        help=f"First backoff delay in seconds while creating the lease (default: {DEFAULT_BACKOFF_BASE_DELAY})",
    )
    run.add_argument(
        "--backoff-max-delay",
        type=_positive_float,
        default=MAX_BACKOFF,
        help=f"Backoff delay cap in seconds (default: {MAX_BACKOFF})",
    )
    run.add_argument("--once", action="store_true", help="Run a single sync cycle and exit")
    _add_logging_arguments(run)

    show = subparsers.add_parser("show", help="Print a stored lease")
    show.add_argument("holder_identity", metavar="HOLDER", help="Node name holding the lease")
    _add_store_arguments(show)
    show.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text)")

    register = subparsers.add_parser("register-node", help="Register a node object so leases can reference it")
    register.add_argument("node_name", metavar="NAME", help="Node name")
    register.add_argument("--store-dir", required=True, help="Root directory of the file-backed store")
    register.add_argument("--uid", default=None, help="Node UID (default: random UUID)")

    summarize = subparsers.add_parser("summarize", help="Summarize pods and bandwidth requests per node")
    summarize.add_argument("--pods", required=True, help="JSON file with a pod list")
    summarize.add_argument("--nodes", required=True, help="JSON file with a node list")
    summarize.add_argument(
        "--format", choices=["table", "json", "csv"], default="table", help="Output format (default: table)"
    )

    return parser


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = build_parser()
    argcomplete.autocomplete(parser)
    return parser.parse_args(argv)
