"""Tests for configuration management."""

import json
import os
from pathlib import Path

import pytest

from arbi_cli.config import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_FILE,
    ArbiConfig,
    SchedulerConfig,
    _config_to_dict,
    _validate_url,
    ensure_directories,
    export_config_json,
    load_config,
    save_config,
    validate_config,
)
from arbi_cli.exceptions import ConfigurationError
from arbi_cli.scheduler.models import JobKind


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep ARBI_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("ARBI_"):
            monkeypatch.delenv(key)


@pytest.fixture
def config(tmp_path) -> ArbiConfig:
    return ArbiConfig(config_dir=tmp_path / "config", data_dir=tmp_path / "data")


class TestDefaults:
    def test_default_paths(self):
        assert DEFAULT_CONFIG_DIR.name == "arbi"
        assert DEFAULT_CONFIG_FILE == "config.toml"

    def test_scheduler_defaults(self):
        scheduler = SchedulerConfig()

        assert scheduler.autostart is True
        assert scheduler.timezone == "UTC"
        assert scheduler.allow_overlap is False
        assert all(scheduler.is_enabled(kind) for kind in JobKind)

    def test_is_enabled_per_job(self):
        scheduler = SchedulerConfig(cleanup=False)

        assert scheduler.is_enabled(JobKind.CLEANUP) is False
        assert scheduler.is_enabled(JobKind.DAILY_RESET) is True

    def test_pid_file_in_data_dir(self, config):
        assert config.pid_file == config.data_dir / "arbi.pid"


class TestLoadConfig:
    """Tests for loading from file and environment."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.toml")

        assert config.server.port == 8400
        assert config.backend.base_url == "http://localhost:3000"

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'data_dir = "/var/lib/arbi"\n'
            "\n"
            "[scheduler]\n"
            "payout_processing = false\n"
            'timezone = "Europe/Berlin"\n'
            "\n"
            "[scan]\n"
            "min_score = 80\n"
            'categories = ["9355", "15032"]\n'
            "\n"
            "[backend]\n"
            'base_url = "http://backend:3000"\n'
            "\n"
            "[logging]\n"
            'level = "DEBUG"\n'
            'file = "/tmp/arbi.log"\n'
        )

        config = load_config(path)

        assert config.data_dir == Path("/var/lib/arbi")
        assert config.scheduler.payout_processing is False
        assert config.scheduler.timezone == "Europe/Berlin"
        assert config.scan.min_score == 80
        assert config.scan.categories == ["9355", "15032"]
        assert config.backend.base_url == "http://backend:3000"
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("/tmp/arbi.log")

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[server]\nport = 9000\nworkers = 4\n")

        config = load_config(path)

        assert config.server.port == 9000
        assert not hasattr(config.server, "workers")

    def test_invalid_toml_raises(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[scheduler\nbroken")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text("[server]\nport = 9000\n")
        monkeypatch.setenv("ARBI_PORT", "9100")
        monkeypatch.setenv("ARBI_BACKEND_URL", "http://other:3000")
        monkeypatch.setenv("ARBI_JOB_CLEANUP", "false")
        monkeypatch.setenv("ARBI_AUTOSTART", "no")
        monkeypatch.setenv("ARBI_MIN_SCORE", "85")
        monkeypatch.setenv("ARBI_LOG_LEVEL", "debug")

        config = load_config(path)

        assert config.server.port == 9100
        assert config.backend.base_url == "http://other:3000"
        assert config.scheduler.cleanup is False
        assert config.scheduler.autostart is False
        assert config.scan.min_score == 85.0
        assert config.logging.level == "DEBUG"

    def test_config_dir_from_env(self, tmp_path, monkeypatch):
        (tmp_path / "config.toml").write_text("[server]\nport = 9200\n")
        monkeypatch.setenv("ARBI_CONFIG_DIR", str(tmp_path))

        config = load_config()

        assert config.server.port == 9200
        assert config.config_dir == tmp_path


class TestSaveConfig:
    def test_round_trip(self, config, tmp_path):
        config.scheduler.cleanup = False
        config.scan.min_score = 82
        config.scan.categories = ["9355"]
        config.server.port = 9001
        config.logging.file = tmp_path / "arbi.log"

        path = save_config(config)
        loaded = load_config(path)

        assert path == config.config_dir / "config.toml"
        assert loaded.scheduler.cleanup is False
        assert loaded.scan.min_score == 82
        assert loaded.scan.categories == ["9355"]
        assert loaded.server.port == 9001
        assert loaded.logging.file == tmp_path / "arbi.log"
        assert loaded.logging.format == config.logging.format
        assert loaded.data_dir == config.data_dir

    def test_save_to_explicit_path(self, config, tmp_path):
        path = save_config(config, tmp_path / "nested" / "custom.toml")

        assert path.exists()
        assert "[scheduler]" in path.read_text()


class TestValidateConfig:
    def test_defaults_are_valid(self, config):
        ensure_directories(config)

        assert validate_config(config) == []

    def test_missing_data_dir_is_warning(self, config):
        errors = validate_config(config)

        assert [(e.field, e.severity) for e in errors] == [("data_dir", "warning")]

    def test_errors(self, config):
        ensure_directories(config)
        config.scheduler.timezone = "Mars/Olympus"
        config.scan.min_score = -1
        config.backend.base_url = "not-a-url"
        config.backend.timeout = 0
        config.server.port = 70000
        config.logging.level = "LOUD"

        fields = {e.field for e in validate_config(config) if e.severity == "error"}

        assert fields == {
            "scheduler.timezone",
            "scan.min_score",
            "backend.base_url",
            "backend.timeout",
            "server.port",
            "logging.level",
        }

    def test_warnings(self, config):
        ensure_directories(config)
        config.scheduler.allow_overlap = True
        config.scan.auto_buy_enabled = True
        config.scan.auto_buy_score = 50
        config.scan.min_score = 70

        errors = validate_config(config)

        assert {e.field for e in errors} == {"scheduler.allow_overlap", "scan.auto_buy_score"}
        assert all(e.severity == "warning" for e in errors)

    def test_error_str(self, config):
        config.server.port = 0
        error = next(e for e in validate_config(config) if e.field == "server.port")

        assert str(error).startswith("[ERROR] server.port:")


class TestHelpers:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("http://localhost:3000", True),
            ("https://api.example.com/v1", True),
            ("ftp://example.com", False),
            ("localhost:3000", False),
        ],
    )
    def test_validate_url(self, url, expected):
        assert _validate_url(url) is expected

    def test_export_json(self, config):
        data = json.loads(export_config_json(config))

        assert data["server"]["port"] == 8400
        assert data["scheduler"]["timezone"] == "UTC"
        assert data["scan"]["min_score"] == 70
        assert data["data_dir"] == str(config.data_dir)

    def test_config_to_dict_stringifies_paths(self, config, tmp_path):
        config.logging.file = tmp_path / "arbi.log"

        assert _config_to_dict(config)["logging"]["file"] == str(tmp_path / "arbi.log")

    def test_ensure_directories(self, config):
        ensure_directories(config)

        assert config.config_dir.is_dir()
        assert config.data_dir.is_dir()
