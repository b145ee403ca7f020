"""
Shared pytest fixtures.

SFTP traffic is served by ``FakeSFTPClient``, an in-process stand-in for
``paramiko.SFTPClient`` that maps remote paths onto a temporary directory and
answers ``stat``/``listdir_attr`` with real ``paramiko.SFTPAttributes``.
"""

import json
import logging
import os

import paramiko
import pytest

from repo_tool import transfer


class FakeSFTPClient:
    def __init__(self, root):
        self.root = root
        self.closed = False
        self.opened = []

    def _local(self, path):
        rel = path.lstrip("/") or "."
        return os.path.join(str(self.root), rel)

    def stat(self, path):
        return paramiko.SFTPAttributes.from_stat(os.stat(self._local(path)))

    def listdir_attr(self, path="."):
        local = self._local(path)
        return [
            paramiko.SFTPAttributes.from_stat(os.stat(os.path.join(local, name)), filename=name)
            for name in os.listdir(local)
        ]

    def open(self, path, mode="r", bufsize=-1):
        self.opened.append((path, mode))
        return open(self._local(path), mode)

    def mkdir(self, path, mode=0o777):
        os.mkdir(self._local(path), mode)

    def close(self):
        self.closed = True


class FakeSSHClient:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeRemote:
    """Records every session opened through ``connect_sftp``."""

    def __init__(self, root):
        self.root = root
        self.sessions = []

    def connect(self, repo):
        client, sftp = FakeSSHClient(), FakeSFTPClient(self.root)
        self.sessions.append((repo, client, sftp))
        return client, sftp

    @property
    def all_closed(self):
        return all(client.closed and sftp.closed for _, client, sftp in self.sessions)


@pytest.fixture
def remote_root(tmp_path):
    root = tmp_path / "remote"
    root.mkdir()
    return root


@pytest.fixture
def fake_remote(remote_root, monkeypatch):
    remote = FakeRemote(remote_root)
    monkeypatch.setattr(transfer, "connect_sftp", remote.connect)
    return remote


@pytest.fixture
def sftp(remote_root):
    return FakeSFTPClient(remote_root)


@pytest.fixture
def logger():
    log = logging.getLogger("repo_tool_tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def sample_tree(tmp_path):
    """A small tree: a.txt, sub/b.txt, sub/deeper/c.bin, empty/."""
    root = tmp_path / "tree"
    (root / "sub" / "deeper").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "a.txt").write_text("hi")
    (root / "sub" / "b.txt").write_text("inside sub\n")
    (root / "sub" / "deeper" / "c.bin").write_bytes(b"\x00\x01\x02binary")
    return root


def snapshot(root):
    """Map each relative path under ``root`` to its bytes (None for directories)."""
    result = {}
    for dirpath, dirnames, filenames in os.walk(str(root)):
        for d in dirnames:
            rel = os.path.relpath(os.path.join(dirpath, d), str(root))
            result[rel.replace(os.sep, "/")] = None
        for f in filenames:
            full = os.path.join(dirpath, f)
            rel = os.path.relpath(full, str(root))
            with open(full, "rb") as fh:
                result[rel.replace(os.sep, "/")] = fh.read()
    return result


def write_config(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
