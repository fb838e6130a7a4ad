"""
Unit tests for server configuration and the CLI.
"""

from pathlib import Path

import pytest

from molecule.__main__ import build_parser, config_from_args, main
from molecule.config import ServerConfig
from molecule.server import MoleculeServer


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 80
        assert config.auth_path == Path(".molecule") / "auth.store"
        assert config.meta_path == Path(".molecule") / "data" / "map.json"
        assert config.collections_path == Path(".molecule") / "data" / "collections"

    def test_data_dir_override(self):
        config = ServerConfig(data_dir="/srv/db")

        assert config.meta_path == Path("/srv/db/map.json")
        assert config.auth_path == Path(".molecule/auth.store")

    def test_logging_disabled_by_default(self):
        assert ServerConfig().effective_log_level == "WARNING"
        assert ServerConfig(enable_logging=True, log_level="debug").effective_log_level == "DEBUG"

    @pytest.mark.parametrize("kwargs", [
        {"port": 70000},
        {"port": -1},
        {"buffer_size": 10},
        {"timeout": 0},
        {"bcrypt_rounds": 3},
        {"log_format": "xml"},
        {"auth": "no-colon"},
    ])
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            ServerConfig(**kwargs).validate()

    def test_validate_accepts_defaults(self):
        ServerConfig().validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MOLECULE_HOST", "127.0.0.1")
        monkeypatch.setenv("MOLECULE_PORT", "7070")
        monkeypatch.setenv("MOLECULE_AUTH", "admin:secret")
        monkeypatch.setenv("MOLECULE_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 7070
        assert config.auth == "admin:secret"
        assert config.enable_logging is True


class TestCommandLine:
    """Tests for argument parsing in __main__."""

    def parse(self, *argv):
        return config_from_args(build_parser(), list(argv))

    def test_defaults(self):
        config = self.parse()

        assert config.host == "0.0.0.0"
        assert config.port == 80
        assert config.cli is False
        assert config.enable_logging is False

    def test_flags(self):
        config = self.parse(
            "--addr", "127.0.0.1",
            "--port", "7070",
            "--data", "/tmp/db",
            "--auth", "admin:secret",
            "--cli",
            "--enable-logging",
        )

        assert config.host == "127.0.0.1"
        assert config.port == 7070
        assert config.data_path == Path("/tmp/db")
        assert config.auth == "admin:secret"
        assert config.cli is True
        assert config.enable_logging is True

    def test_environment_sets_defaults(self, monkeypatch):
        monkeypatch.setenv("MOLECULE_PORT", "7070")
        monkeypatch.setenv("MOLECULE_HOST", "127.0.0.1")

        assert self.parse().port == 7070
        assert self.parse("--port", "9090").port == 9090
        assert self.parse().host == "127.0.0.1"

    def test_invalid_environment_exits(self, monkeypatch):
        monkeypatch.setenv("MOLECULE_PORT", "eighty")

        with pytest.raises(SystemExit):
            self.parse()

    def test_malformed_auth_exits(self):
        with pytest.raises(SystemExit):
            self.parse("--auth", "adminsecret")


class TestMain:
    """Tests for the non-interactive entry point."""

    def test_banner_uses_bound_address(self, tmp_path, monkeypatch, capsys):
        def fake_run(self, on_ready=None):
            on_ready(("127.0.0.1", 54321))

        monkeypatch.setattr(MoleculeServer, "run", fake_run)

        main(["--addr", "127.0.0.1", "--port", "0", "--root", str(tmp_path)])

        out = capsys.readouterr().out
        assert "Database is running on tcp://127.0.0.1:54321" in out

    def test_no_banner_when_bind_fails(self, tmp_path, monkeypatch, capsys):
        def fake_run(self, on_ready=None):
            raise OSError("Address already in use")

        monkeypatch.setattr(MoleculeServer, "run", fake_run)

        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "0", "--root", str(tmp_path)])

        captured = capsys.readouterr()
        assert exc_info.value.code == 1
        assert "Database is running" not in captured.out
        assert "Address already in use" in captured.err
