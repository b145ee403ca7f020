"""Handlers for each CLI command; they take the loaded Config explicitly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from .config import Config, save_config
from .repository import open_repository


@dataclass
class CommandContext:
    config: Config
    config_path: Path
    logger: logging.Logger
    long_listing: bool = False


def list_repositories(ctx: CommandContext, _arg: Optional[str]) -> int:
    cfg = ctx.config
    print("Available repositories:")
    for name in sorted(cfg.repositories):
        repo = cfg.repositories[name]
        marker = "*" if name == cfg.current else " "
        print(f" {marker} {name} ({repo.type}, {repo.path})")
    return 0


def set_repository(ctx: CommandContext, name: Optional[str]) -> int:
    cfg = ctx.config
    cfg.get_repository(name)
    cfg.current = name
    save_config(cfg, ctx.config_path)
    print(f"Current repository set to '{name}'.")
    return 0


def show_repository(ctx: CommandContext, path: Optional[str]) -> int:
    repo = open_repository(ctx.config.current_repository(), ctx.logger)
    for entry in repo.list(path):
        if ctx.long_listing:
            flag = "d" if entry.is_dir else "-"
            ts = datetime.fromtimestamp(entry.mtime).strftime("%Y-%m-%d %H:%M:%S")
            print(f"{flag} {entry.size:>12} {ts} {entry.display_name}")
        else:
            print(entry.display_name)
    return 0


def get_path(ctx: CommandContext, name: Optional[str]) -> int:
    repo = open_repository(ctx.config.current_repository(), ctx.logger)
    dst = repo.get(name)
    ctx.logger.info(f"[GET] done: {dst}")
    return 0


def put_path(ctx: CommandContext, name: Optional[str]) -> int:
    repo = open_repository(ctx.config.current_repository(), ctx.logger)
    dst = repo.put(name)
    ctx.logger.info(f"[PUT] done: {dst}")
    return 0


def change_directory(ctx: CommandContext, new_dir: Optional[str]) -> int:
    cfg = ctx.config
    repo = open_repository(cfg.current_repository(), ctx.logger)
    new_path = repo.change_directory(new_dir)
    save_config(cfg, ctx.config_path)
    print(f"Changed directory to '{new_path}'")
    return 0


@dataclass
class Command:
    handler: Callable[[CommandContext, Optional[str]], int]
    missing_arg_message: Optional[str] = None

    @property
    def requires_arg(self) -> bool:
        return self.missing_arg_message is not None


COMMANDS: Dict[str, Command] = {
    "list": Command(list_repositories),
    "set": Command(set_repository, "Please specify a repository to set."),
    "show": Command(show_repository),
    "get": Command(get_path, "Please specify a file or folder to get."),
    "put": Command(put_path, "Please specify a file or folder to put."),
    "cd": Command(change_directory, "Please specify a directory to change to."),
}


__all__ = [
    "CommandContext",
    "Command",
    "COMMANDS",
    "list_repositories",
    "set_repository",
    "show_repository",
    "get_path",
    "put_path",
    "change_directory",
]
