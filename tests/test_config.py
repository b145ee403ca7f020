"""Tests for the configuration store."""

import json
import os
import stat

import pytest

from repo_tool.config import (
    Config,
    RepositoryConfig,
    config_to_dict,
    dumps_config,
    load_config,
    save_config,
)
from repo_tool.errors import ConfigIOError, RepositoryNotFound

from conftest import write_config


CANONICAL = {
    "current": "home",
    "repositories": {
        "box": {
            "type": "ssh",
            "path": "/srv/files",
            "host": "box.example.com",
            "port": 2222,
            "user": "deploy",
            "private_key": "~/.ssh/id_ed25519",
        },
        "home": {"type": "local", "path": "/tmp/r"},
    },
}


class TestLoad:
    def test_load_parses_repositories(self, tmp_path):
        path = write_config(tmp_path / "config" / "config.json", CANONICAL)
        cfg = load_config(path)
        assert cfg.current == "home"
        assert cfg.repositories["home"] == RepositoryConfig(type="local", path="/tmp/r")
        box = cfg.repositories["box"]
        assert box.port == 2222
        assert box.private_key == "~/.ssh/id_ed25519"
        assert box.password == ""

    def test_field_names_are_case_insensitive(self, tmp_path):
        path = write_config(tmp_path / "c.json", {"Current": "x", "Repositories": {"x": {"Type": "local", "PATH": "/d"}}})
        cfg = load_config(path)
        assert cfg.current == "x"
        assert cfg.repositories["x"].path == "/d"

    def test_unknown_keys_are_ignored(self, tmp_path):
        path = write_config(tmp_path / "c.json", {"current": "", "extra": 1, "repositories": {}})
        assert load_config(path) == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigIOError):
            load_config(tmp_path / "nope.json")

    def test_malformed_json_fails_loudly(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigIOError, match="Malformed"):
            load_config(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigIOError):
            load_config(path)

    def test_bad_port(self, tmp_path):
        path = write_config(tmp_path / "c.json", {"repositories": {"x": {"type": "ssh", "port": "abc"}}})
        with pytest.raises(ConfigIOError, match="port"):
            load_config(path)


class TestSave:
    def test_round_trip_is_canonical_regardless_of_key_order(self, tmp_path):
        shuffled = {
            "repositories": {
                "home": {"path": "/tmp/r", "type": "local"},
                "box": {
                    "user": "deploy",
                    "private_key": "~/.ssh/id_ed25519",
                    "port": 2222,
                    "host": "box.example.com",
                    "type": "ssh",
                    "path": "/srv/files",
                },
            },
            "current": "home",
        }
        path = tmp_path / "config.json"
        path.write_text(json.dumps(shuffled, indent=4), encoding="utf-8")

        save_config(load_config(path), path)

        assert path.read_text(encoding="utf-8") == json.dumps(CANONICAL, indent=2)

    def test_empty_fields_are_omitted(self):
        cfg = Config(current="", repositories={"x": RepositoryConfig(type="local", path="/d")})
        assert config_to_dict(cfg) == {"current": "", "repositories": {"x": {"type": "local", "path": "/d"}}}

    def test_two_space_indent(self):
        text = dumps_config(Config(current="a", repositories={"a": RepositoryConfig(type="local", path="/")}))
        assert text.splitlines()[1] == '  "current": "a",'

    def test_save_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(Config(), path)
        assert [p.name for p in tmp_path.iterdir()] == ["config.json"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
    def test_mode_new_file_and_existing_file(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(Config(), path)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

        os.chmod(path, 0o600)
        save_config(Config(current="x"), path)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_save_into_missing_directory(self, tmp_path):
        with pytest.raises(ConfigIOError):
            save_config(Config(), tmp_path / "missing" / "config.json")

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        cfg = Config(current="home", repositories={"home": RepositoryConfig(type="local", path="/tmp/r")})
        save_config(cfg, path)
        assert "current: home" in path.read_text(encoding="utf-8")
        assert load_config(path) == cfg


class TestCurrentRepository:
    def test_returns_selected(self):
        repo = RepositoryConfig(type="local", path="/d")
        assert Config(current="a", repositories={"a": repo}).current_repository() is repo

    def test_empty_current(self):
        with pytest.raises(RepositoryNotFound, match="No current repository"):
            Config().current_repository()

    def test_dangling_current(self):
        with pytest.raises(RepositoryNotFound, match="'gone' not found"):
            Config(current="gone").current_repository()
