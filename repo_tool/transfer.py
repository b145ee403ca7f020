"""Transfer engine: local tree copy, SFTP walk, download and upload."""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
import stat
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import paramiko

from .config import RepositoryConfig
from .errors import (
    ConnectionFailure,
    NotADirectory,
    PathNotFound,
    SessionFailure,
    TransferFailure,
    WalkFailure,
)

DEFAULT_SSH_PORT = 22
COPY_CHUNK_SIZE = 32768

# paramiko raises SSHException, not IOError, when the channel drops mid-session.
SFTP_ERRORS = (IOError, OSError, paramiko.SSHException)


def setup_logger(log_file: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("repo_tool")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    return logger

# ====================== SSH / SFTP connection ======================
def connect_sftp(repo: RepositoryConfig) -> Tuple[paramiko.SSHClient, paramiko.SFTPClient]:
    """Open an SSH connection and an SFTP session for ``repo``.

    Exactly one credential is offered: the password when set, otherwise the
    private key file (no passphrase). Host keys are accepted unverified.
    """
    if not repo.password and not repo.private_key:
        raise ConnectionFailure(f"Repository for {repo.host} has neither a password nor a private_key.")

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    kwargs = dict(
        hostname=repo.host,
        port=repo.port or DEFAULT_SSH_PORT,
        username=repo.user or None,
        allow_agent=False,
        look_for_keys=False,
    )
    if repo.password:
        kwargs["password"] = repo.password
    else:
        kwargs["key_filename"] = os.path.expanduser(repo.private_key)

    try:
        client.connect(**kwargs)
    except (paramiko.SSHException, OSError) as exc:
        client.close()
        raise ConnectionFailure(f"Error connecting to SSH server {repo.host}: {exc}") from exc

    try:
        sftp = client.open_sftp()
    except (paramiko.SSHException, OSError) as exc:
        client.close()
        raise SessionFailure(f"Error creating SFTP client: {exc}") from exc
    return client, sftp


@contextmanager
def sftp_session(repo: RepositoryConfig, logger: logging.Logger) -> Iterator[paramiko.SFTPClient]:
    logger.debug(f"[SSH] connecting {repo.user}@{repo.host}:{repo.port or DEFAULT_SSH_PORT}")
    client, sftp = connect_sftp(repo)
    try:
        yield sftp
    finally:
        try:
            sftp.close()
        finally:
            client.close()
        logger.debug(f"[SSH] closed {repo.host}")

# ====================== SFTP utilities ======================
def remote_join(base: str, name: str) -> str:
    return posixpath.normpath(posixpath.join(base or ".", name))


def sftp_stat(sftp: paramiko.SFTPClient, path: str) -> paramiko.SFTPAttributes:
    try:
        return sftp.stat(path)
    except FileNotFoundError as exc:
        raise PathNotFound(f"Remote path '{path}' not found.") from exc
    except SFTP_ERRORS as exc:
        raise PathNotFound(f"Error accessing remote path '{path}': {exc}") from exc


def sftp_mkdirs(sftp: paramiko.SFTPClient, remote_dir: str) -> None:
    remote_dir = posixpath.normpath(remote_dir)
    if remote_dir in ("", ".", "/"):
        return
    absolute = remote_dir.startswith("/")
    path = "/" if absolute else ""
    for part in remote_dir.strip("/").split("/"):
        path = posixpath.join(path, part) if path else part
        try:
            attrs = sftp.stat(path)
        except FileNotFoundError:
            sftp.mkdir(path)
            continue
        if not stat.S_ISDIR(attrs.st_mode or 0):
            raise NotADirectory(f"Remote path '{path}' is not a directory.")


def walk_remote(sftp: paramiko.SFTPClient, root: str) -> Iterator[Tuple[str, paramiko.SFTPAttributes]]:
    """Yield ``(path, attributes)`` for ``root`` and each descendant, pre-order."""
    try:
        attrs = sftp.stat(root)
    except SFTP_ERRORS as exc:
        raise WalkFailure(f"error walking remote directory '{root}': {exc}") from exc
    yield root, attrs
    if stat.S_ISDIR(attrs.st_mode or 0):
        yield from _walk_children(sftp, root)


def _walk_children(sftp: paramiko.SFTPClient, directory: str) -> Iterator[Tuple[str, paramiko.SFTPAttributes]]:
    try:
        entries = sftp.listdir_attr(directory)
    except SFTP_ERRORS as exc:
        raise WalkFailure(f"error walking remote directory '{directory}': {exc}") from exc
    for entry in entries:
        child = posixpath.join(directory, entry.filename)
        yield child, entry
        if stat.S_ISDIR(entry.st_mode or 0):
            yield from _walk_children(sftp, child)

# ====================== Download ======================
def download_file(sftp: paramiko.SFTPClient, remote_path: str, local_path: str, logger: logging.Logger) -> None:
    try:
        rfd = sftp.open(remote_path, "rb")
    except SFTP_ERRORS as exc:
        raise TransferFailure(f"could not open remote file '{remote_path}': {exc}") from exc
    with rfd:
        try:
            lfd = open(local_path, "wb")
        except OSError as exc:
            raise TransferFailure(f"could not create local file '{local_path}': {exc}") from exc
        with lfd:
            try:
                shutil.copyfileobj(rfd, lfd, COPY_CHUNK_SIZE)
            except SFTP_ERRORS as exc:
                raise TransferFailure(f"could not copy file contents of '{remote_path}': {exc}") from exc
    logger.info(f"[GET] Downloaded file '{remote_path}'")


def download_directory(sftp: paramiko.SFTPClient, remote_path: str, local_path: str, logger: logging.Logger) -> None:
    try:
        os.makedirs(local_path, exist_ok=True)
    except OSError as exc:
        raise TransferFailure(f"could not create local directory '{local_path}': {exc}") from exc
    logger.info(f"[GET] Created directory '{local_path}'")

    for item_path, attrs in walk_remote(sftp, remote_path):
        rel = item_path[len(remote_path):].lstrip("/")
        if not rel:
            continue
        local_item = os.path.join(local_path, *rel.split("/"))
        if stat.S_ISDIR(attrs.st_mode or 0):
            try:
                os.makedirs(local_item, exist_ok=True)
            except OSError as exc:
                raise TransferFailure(f"could not create local subdirectory '{local_item}': {exc}") from exc
            logger.info(f"[GET] Created directory '{local_item}'")
        else:
            download_file(sftp, item_path, local_item, logger)

# ====================== Upload ======================
def upload_file(sftp: paramiko.SFTPClient, local_path: str, remote_path: str, logger: logging.Logger) -> None:
    try:
        lfd = open(local_path, "rb")
    except OSError as exc:
        raise TransferFailure(f"could not open local file '{local_path}': {exc}") from exc
    with lfd:
        try:
            with sftp.open(remote_path, "wb") as rfd:
                shutil.copyfileobj(lfd, rfd, COPY_CHUNK_SIZE)
        except SFTP_ERRORS as exc:
            raise TransferFailure(f"could not upload '{local_path}' to '{remote_path}': {exc}") from exc
    logger.info(f"[PUT] Uploaded file '{remote_path}'")


def upload_directory(sftp: paramiko.SFTPClient, local_path: str, remote_path: str, logger: logging.Logger) -> None:
    def _raise(exc: OSError) -> None:
        raise TransferFailure(f"error walking local directory '{local_path}': {exc}") from exc

    for root, dirs, files in os.walk(local_path, onerror=_raise, followlinks=True):
        rel = os.path.relpath(root, local_path)
        remote_root = remote_path if rel == "." else posixpath.join(remote_path, *rel.split(os.sep))
        try:
            sftp_mkdirs(sftp, remote_root)
        except SFTP_ERRORS as exc:
            raise TransferFailure(f"could not create remote directory '{remote_root}': {exc}") from exc
        logger.info(f"[PUT] Created directory '{remote_root}'")
        for fname in files:
            upload_file(sftp, os.path.join(root, fname), posixpath.join(remote_root, fname), logger)

# ====================== Local copy ======================
def copy_tree(src: str, dst: str) -> None:
    """Copy ``src`` (file or directory tree) to ``dst``, aborting on the first error."""
    try:
        info = os.stat(src)
    except FileNotFoundError as exc:
        raise PathNotFound(f"'{src}' not found.") from exc
    except OSError as exc:
        raise TransferFailure(f"could not stat '{src}': {exc}") from exc

    if stat.S_ISDIR(info.st_mode):
        try:
            os.makedirs(dst, mode=stat.S_IMODE(info.st_mode), exist_ok=True)
            names = os.listdir(src)
        except OSError as exc:
            raise TransferFailure(f"could not copy directory '{src}': {exc}") from exc
        for name in names:
            copy_tree(os.path.join(src, name), os.path.join(dst, name))
        return

    try:
        with open(src, "rb") as sfd, open(dst, "wb") as dfd:
            shutil.copyfileobj(sfd, dfd, COPY_CHUNK_SIZE)
    except OSError as exc:
        raise TransferFailure(f"could not copy '{src}' to '{dst}': {exc}") from exc


__all__ = [
    "setup_logger",
    "connect_sftp",
    "sftp_session",
    "remote_join",
    "sftp_stat",
    "sftp_mkdirs",
    "walk_remote",
    "download_file",
    "download_directory",
    "upload_file",
    "upload_directory",
    "copy_tree",
]
