"""Configuration store: repositories and the current selection."""

from __future__ import annotations

import json
import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigIOError, RepositoryNotFound

DEFAULT_CONFIG_PATH = Path("config") / "config.json"

# Serialization order of repository fields; empty values are omitted.
_REPOSITORY_FIELDS = ("type", "path", "host", "port", "user", "private_key", "password")


@dataclass
class RepositoryConfig:
    type: str = ""
    path: str = ""
    host: str = ""
    port: int = 0
    user: str = ""
    private_key: str = ""
    password: str = ""


@dataclass
class Config:
    current: str = ""
    repositories: Dict[str, RepositoryConfig] = field(default_factory=dict)

    def get_repository(self, name: str) -> RepositoryConfig:
        try:
            return self.repositories[name]
        except KeyError:
            raise RepositoryNotFound(f"Repository '{name}' not found.") from None

    def current_repository(self) -> RepositoryConfig:
        if not self.current:
            raise RepositoryNotFound("No current repository; select one with 'set <repo>'.")
        return self.get_repository(self.current)


def _ci_get(mapping: Dict[str, Any], key: str, default: Any = None) -> Any:
    if not isinstance(mapping, dict):
        return default
    target = key.lower()
    for k, v in mapping.items():
        if isinstance(k, str) and k.lower() == target:
            return v
    return default


def parse_repository(raw: Any) -> RepositoryConfig:
    if not isinstance(raw, dict):
        raise ConfigIOError("Repository entries must be mappings.")
    try:
        port = int(_ci_get(raw, "port", 0) or 0)
    except (TypeError, ValueError):
        raise ConfigIOError(f"Invalid port: {_ci_get(raw, 'port')!r}") from None
    return RepositoryConfig(
        type=str(_ci_get(raw, "type", "") or ""),
        path=str(_ci_get(raw, "path", "") or ""),
        host=str(_ci_get(raw, "host", "") or ""),
        port=port,
        user=str(_ci_get(raw, "user", "") or ""),
        private_key=str(_ci_get(raw, "private_key", "") or ""),
        password=str(_ci_get(raw, "password", "") or ""),
    )


def config_from_dict(raw: Any) -> Config:
    if not isinstance(raw, dict):
        raise ConfigIOError("Configuration root must be a mapping.")
    repos_raw = _ci_get(raw, "repositories") or {}
    if not isinstance(repos_raw, dict):
        raise ConfigIOError("'repositories' must be a mapping of name to repository.")
    repositories = {str(name): parse_repository(entry) for name, entry in repos_raw.items()}
    return Config(current=str(_ci_get(raw, "current", "") or ""), repositories=repositories)


def repository_to_dict(repo: RepositoryConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _REPOSITORY_FIELDS:
        value = getattr(repo, key)
        if value:
            out[key] = value
    return out


def config_to_dict(config: Config) -> Dict[str, Any]:
    return {
        "current": config.current,
        "repositories": {
            name: repository_to_dict(config.repositories[name])
            for name in sorted(config.repositories)
        },
    }


def dumps_config(config: Config) -> str:
    return json.dumps(config_to_dict(config), ensure_ascii=False, indent=2)


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in {".yaml", ".yml"}


def _yaml_module():
    try:
        import yaml  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise ConfigIOError("PyYAML is required for YAML configuration support.") from exc
    return yaml


def load_config(path: Optional[Path] = None) -> Config:
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigIOError(f"Error loading configuration {path}: {exc}") from exc

    if _is_yaml(path):
        yaml = _yaml_module()
        try:
            raw = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigIOError(f"Malformed configuration {path}: {exc}") from exc
    else:
        try:
            raw = json.loads(text)
        except ValueError as exc:
            raise ConfigIOError(f"Malformed configuration {path}: {exc}") from exc
    return config_from_dict(raw)


def save_config(config: Config, path: Optional[Path] = None) -> None:
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if _is_yaml(path):
        payload = _yaml_module().safe_dump(config_to_dict(config), sort_keys=False, allow_unicode=True)
    else:
        payload = dumps_config(config)

    directory = path.parent if str(path.parent) else Path(".")
    try:
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = 0o644
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as exc:
        raise ConfigIOError(f"Error saving configuration {path}: {exc}") from exc


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "RepositoryConfig",
    "Config",
    "parse_repository",
    "config_from_dict",
    "config_to_dict",
    "repository_to_dict",
    "dumps_config",
    "load_config",
    "save_config",
]
