"""Command-line argument parsing for the repository tool."""

from __future__ import annotations

import argparse
from typing import List, Optional

from .config import DEFAULT_CONFIG_PATH

COMMAND_HELP = """Commands:
  list       - List all available repositories
  set <repo> - Set the current repository
  show [dir] - Show files in the current repository
  cd <dir>   - Change the current directory for the repository
  get <name> - Get a file or folder from the current repository
  put <name> - Put a file or folder in the current repository"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-tool",
        usage="%(prog)s [options] <command> [arg]",
        description="Browse and transfer files against a local, network or SSH/SFTP repository",
        epilog=COMMAND_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=str(DEFAULT_CONFIG_PATH), help="Path to configuration file (JSON or YAML)")
    parser.add_argument("--log-file", type=str, help="Also write log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-l", "--long", action="store_true", help="show: include type, size and modification time")
    parser.add_argument("command", nargs="?", help="One of list, set, show, cd, get, put")
    parser.add_argument("operands", nargs="*", help="Command argument")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_intermixed_args(argv)


def print_usage() -> None:
    print(build_parser().format_help())


__all__ = ["COMMAND_HELP", "build_parser", "parse_args", "print_usage"]
