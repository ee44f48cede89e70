"""CLI module - Command-line interface components."""

from node_lease.cli.main import main
from node_lease.cli.parser import build_parser, parse_arguments

__all__ = ["build_parser", "main", "parse_arguments"]
