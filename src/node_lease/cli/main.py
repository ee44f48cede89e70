"""CLI entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from node_lease.cache.util import (
    create_node_name_to_info_map,
    node_summary_frame,
    nodes_from_documents,
    pods_from_documents,
)
from node_lease.cli.parser import parse_arguments
from node_lease.core.config import LeaseConfig, LogConfig, effective_lease_config
from node_lease.core.exceptions import ConfigurationError, LeaseNotFoundError, NodeLeaseError
from node_lease.core.logging import flush_logging_handlers, setup_logging
from node_lease.lease.clock import RealClock
from node_lease.lease.controller import LeaseController
from node_lease.lease.models import format_micro_time
from node_lease.store.file import FileLeaseStore, FileNodeRegistry

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


def _install_stop_handlers(stop_event: threading.Event, logger: logging.Logger) -> None:
    def _handle(signum, _frame):
        logger.info(f"Received {signal.Signals(signum).name}; stopping after the current cycle")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def _heartbeat_failure_reporter(logger: logging.Logger):
    def _report() -> None:
        logger.warning("Repeated node lease renewal failures; node may soon be considered unhealthy")

    return _report


def run_command(args: argparse.Namespace) -> int:
    log_config = LogConfig(format=args.log_format, directory=args.log_dir)
    logger = setup_logging(
        holder_identity=args.holder_identity,
        log_level=args.log_level,
        log_format=log_config.format,
        log_dir=log_config.directory,
        file_max_bytes=log_config.file_max_bytes,
        file_backup_count=log_config.file_backup_count,
    )

    config = effective_lease_config(LeaseConfig.from_args(args), logger=logger)
    store_dir = Path(args.store_dir)
    controller = LeaseController.from_config(
        config,
        RealClock(),
        FileLeaseStore(store_dir),
        _heartbeat_failure_reporter(logger),
        node_lookup=FileNodeRegistry(store_dir),
        logger=logging.getLogger("node_lease.controller"),
    )

    try:
        if args.once:
            controller.sync()
        else:
            stop_event = threading.Event()
            _install_stop_handlers(stop_event, logger)
            controller.run(stop_event)
    finally:
        flush_logging_handlers(logger)
    return EXIT_OK


def show_command(args: argparse.Namespace) -> int:
    store = FileLeaseStore(args.store_dir)
    try:
        lease = store.get(args.namespace, args.holder_identity)
    except LeaseNotFoundError:
        print(f"No lease found for {args.namespace}/{args.holder_identity}", file=sys.stderr)
        return EXIT_ERROR

    if args.format == "json":
        print(json.dumps(lease.to_dict(), indent=2, sort_keys=True))
        return EXIT_OK

    owner = lease.owner_references[0] if lease.owner_references else None
    renew_time = format_micro_time(lease.renew_time) if lease.renew_time else "-"
    print(f"Lease:            {lease.namespace}/{lease.name}")
    print(f"Holder:           {lease.holder_identity}")
    print(f"Duration:         {lease.lease_duration_seconds}s")
    print(f"Renew time:       {renew_time}")
    print(f"Owner:            {f'{owner.kind}/{owner.name} ({owner.uid})' if owner else '-'}")
    print(f"Resource version: {lease.resource_version or '-'}")
    return EXIT_OK


def register_node_command(args: argparse.Namespace) -> int:
    uid = FileNodeRegistry(args.store_dir).register(args.node_name, uid=args.uid)
    print(f"Registered node {args.node_name} (uid {uid})")
    return EXIT_OK


def summarize_command(args: argparse.Namespace) -> int:
    try:
        with open(args.pods, encoding="utf-8") as f:
            pods = pods_from_documents(json.load(f))
        with open(args.nodes, encoding="utf-8") as f:
            nodes = nodes_from_documents(json.load(f))
    except (OSError, json.JSONDecodeError, ValueError) as e:
        print(f"Error: cannot read pod/node lists: {e}", file=sys.stderr)
        return EXIT_USAGE

    frame = node_summary_frame(create_node_name_to_info_map(pods, nodes))
    if args.format == "json":
        print(frame.to_json(orient="records", indent=2))
    elif args.format == "csv":
        print(frame.to_csv(index=False), end="")
    elif frame.empty:
        print("No pods or nodes.")
    else:
        print(frame.to_string(index=False))
    return EXIT_OK


_COMMANDS = {
    "run": run_command,
    "show": show_command,
    "register-node": register_node_command,
    "summarize": summarize_command,
}


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    args = parse_arguments(argv)
    try:
        return _COMMANDS[args.command](args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except NodeLeaseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
