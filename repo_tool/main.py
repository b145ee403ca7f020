"""High-level entrypoint for the repository tool."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .cli import parse_args, print_usage
from .commands import COMMANDS, CommandContext
from .config import load_config
from .errors import RepoToolError
from .transfer import setup_logger


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = setup_logger(args.log_file, args.verbose)
    config_path = Path(args.config)

    try:
        cfg = load_config(config_path)
    except RepoToolError as exc:
        logger.error(f"[ERROR] {exc}")
        return 1

    if not args.command:
        print_usage()
        return 1

    command = COMMANDS.get(args.command)
    if command is None:
        # Unknown commands only print usage and count as success.
        print_usage()
        return 0

    operand = args.operands[0] if args.operands else None
    if command.requires_arg and not operand:
        print(command.missing_arg_message)
        return 1

    ctx = CommandContext(config=cfg, config_path=config_path, logger=logger, long_listing=args.long)
    try:
        return command.handler(ctx, operand)
    except RepoToolError as exc:
        logger.error(f"[ERROR] {exc}")
        return 1


__all__ = ["main"]
