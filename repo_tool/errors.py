"""Exception types raised by the repository tool."""

from __future__ import annotations


class RepoToolError(Exception):
    """Base class for every error the CLI reports and exits 1 on."""


class ConfigIOError(RepoToolError):
    pass


class RepositoryNotFound(RepoToolError):
    pass


class UnsupportedRepositoryType(RepoToolError):
    pass


class PathNotFound(RepoToolError):
    pass


class NotADirectory(RepoToolError):
    pass


class ConnectionFailure(RepoToolError):
    """SSH dial or authentication failed."""


class SessionFailure(RepoToolError):
    """The SFTP subsystem could not be opened on an established connection."""


class TransferFailure(RepoToolError):
    pass


class WalkFailure(RepoToolError):
    pass


__all__ = [
    "RepoToolError",
    "ConfigIOError",
    "RepositoryNotFound",
    "UnsupportedRepositoryType",
    "PathNotFound",
    "NotADirectory",
    "ConnectionFailure",
    "SessionFailure",
    "TransferFailure",
    "WalkFailure",
]
