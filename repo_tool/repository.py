"""Repository backends: local directory, network share and SSH/SFTP."""

from __future__ import annotations

import logging
import os
import posixpath
import stat
from dataclasses import dataclass
from typing import Dict, List, Optional, Type

import paramiko

from .config import RepositoryConfig
from .errors import NotADirectory, PathNotFound, TransferFailure, UnsupportedRepositoryType
from .transfer import (
    copy_tree,
    download_directory,
    download_file,
    SFTP_ERRORS,
    remote_join,
    sftp_session,
    sftp_stat,
    upload_directory,
    upload_file,
)


@dataclass
class Entry:
    name: str
    is_dir: bool
    size: int = 0
    mtime: float = 0.0

    @property
    def display_name(self) -> str:
        return f"{self.name}/" if self.is_dir else self.name


def _target_name(name: str) -> str:
    # An absolute argument lands under its base name, never on itself.
    name = os.path.normpath(name)
    if os.path.isabs(name):
        return os.path.basename(name)
    return name


class Repository:
    """Operations every repository type offers on top of its config entry.

    Paths given to ``list``, ``stat``, ``get`` and ``put`` are relative to the
    stored ``path``; ``change_directory`` replaces the stored path and is
    persisted by the caller.
    """

    type_name = ""

    def __init__(self, config: RepositoryConfig, logger: logging.Logger):
        self.config = config
        self.logger = logger

    def list(self, path: Optional[str] = None) -> List[Entry]:
        raise NotImplementedError

    def stat(self, path: str) -> Entry:
        raise NotImplementedError

    def change_directory(self, new_path: str) -> str:
        raise NotImplementedError

    def get(self, name: str, local_root: Optional[str] = None) -> str:
        raise NotImplementedError

    def put(self, name: str) -> str:
        raise NotImplementedError


class LocalRepository(Repository):
    type_name = "local"

    def resolve(self, name: Optional[str] = None) -> str:
        if not name:
            return os.path.normpath(self.config.path or ".")
        return os.path.normpath(os.path.join(self.config.path, name))

    def list(self, path: Optional[str] = None) -> List[Entry]:
        target = self.resolve(path)
        entries: List[Entry] = []
        try:
            with os.scandir(target) as it:
                for item in it:
                    st = item.stat(follow_symlinks=False)
                    entries.append(Entry(item.name, item.is_dir(), st.st_size, st.st_mtime))
        except FileNotFoundError as exc:
            raise PathNotFound(f"Error reading repository: '{target}' not found.") from exc
        except NotADirectoryError as exc:
            raise NotADirectory(f"Error reading repository: '{target}' is not a directory.") from exc
        except OSError as exc:
            raise TransferFailure(f"Error reading repository '{target}': {exc}") from exc
        return sorted(entries, key=lambda e: e.name)

    def stat(self, path: str) -> Entry:
        target = self.resolve(path)
        try:
            st = os.stat(target)
        except OSError as exc:
            raise PathNotFound(f"Error accessing path '{target}': {exc}") from exc
        return Entry(os.path.basename(target), stat.S_ISDIR(st.st_mode), st.st_size, st.st_mtime)

    def change_directory(self, new_path: str) -> str:
        target = self.resolve(new_path)
        if not self.stat(new_path).is_dir:
            raise NotADirectory(f"Error: '{target}' is not a directory.")
        self.config.path = target
        self.logger.debug(f"[CD] {self.type_name} path -> {target}")
        return target

    def get(self, name: str, local_root: Optional[str] = None) -> str:
        src = self.resolve(name)
        dst = os.path.join(local_root or os.getcwd(), _target_name(name))
        self.logger.info(f"[GET] {src} -> {dst}")
        copy_tree(src, dst)
        return dst

    def put(self, name: str) -> str:
        src = os.path.abspath(name)
        dst = self.resolve(_target_name(name))
        self.logger.info(f"[PUT] {src} -> {dst}")
        copy_tree(src, dst)
        return dst


class NetworkRepository(LocalRepository):
    """A mounted network share; reached through the local filesystem."""

    type_name = "network"


class SSHRepository(Repository):
    type_name = "ssh"

    @property
    def base(self) -> str:
        return self.config.path or "."

    def _session(self):
        return sftp_session(self.config, self.logger)

    @staticmethod
    def _entry(name: str, attrs: paramiko.SFTPAttributes) -> Entry:
        return Entry(
            name=name,
            is_dir=stat.S_ISDIR(attrs.st_mode or 0),
            size=attrs.st_size or 0,
            mtime=float(attrs.st_mtime or 0),
        )

    def list(self, path: Optional[str] = None) -> List[Entry]:
        target = remote_join(self.base, path) if path else self.base
        with self._session() as sftp:
            try:
                attrs = sftp.listdir_attr(target)
            except FileNotFoundError as exc:
                raise PathNotFound(f"Error reading remote directory: '{target}' not found.") from exc
            except SFTP_ERRORS as exc:
                raise TransferFailure(f"Error reading remote directory '{target}': {exc}") from exc
        return sorted((self._entry(a.filename, a) for a in attrs), key=lambda e: e.name)

    def stat(self, path: str) -> Entry:
        target = remote_join(self.base, path)
        with self._session() as sftp:
            attrs = sftp_stat(sftp, target)
        return self._entry(posixpath.basename(target), attrs)

    def change_directory(self, new_path: str) -> str:
        target = remote_join(self.base, new_path)
        with self._session() as sftp:
            attrs = sftp_stat(sftp, target)
        if not stat.S_ISDIR(attrs.st_mode or 0):
            raise NotADirectory(f"Error: remote path '{target}' is not a directory.")
        self.config.path = target
        self.logger.debug(f"[CD] ssh path -> {target}")
        return target

    def get(self, name: str, local_root: Optional[str] = None) -> str:
        remote_path = remote_join(self.base, name)
        local_path = os.path.join(local_root or os.getcwd(), _target_name(name))
        with self._session() as sftp:
            attrs = sftp_stat(sftp, remote_path)
            if stat.S_ISDIR(attrs.st_mode or 0):
                download_directory(sftp, remote_path, local_path, self.logger)
            else:
                download_file(sftp, remote_path, local_path, self.logger)
        return local_path

    def put(self, name: str) -> str:
        local_path = os.path.abspath(name)
        if not os.path.exists(local_path):
            raise PathNotFound(f"'{local_path}' not found.")
        remote_path = remote_join(self.base, _target_name(name).replace(os.sep, "/"))
        with self._session() as sftp:
            if os.path.isdir(local_path):
                upload_directory(sftp, local_path, remote_path, self.logger)
            else:
                upload_file(sftp, local_path, remote_path, self.logger)
        return remote_path


BACKENDS: Dict[str, Type[Repository]] = {
    "local": LocalRepository,
    "network": NetworkRepository,
    "ssh": SSHRepository,
}


def open_repository(config: RepositoryConfig, logger: logging.Logger) -> Repository:
    backend = BACKENDS.get(config.type)
    if backend is None:
        raise UnsupportedRepositoryType(f"Repository type '{config.type}' not implemented yet.")
    return backend(config, logger)


__all__ = [
    "Entry",
    "Repository",
    "LocalRepository",
    "NetworkRepository",
    "SSHRepository",
    "BACKENDS",
    "open_repository",
]
