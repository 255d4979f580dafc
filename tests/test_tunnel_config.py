# Sentry Tunnel
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
"""Tests for tunnel configuration and allow-list parsing."""

import pytest
import yaml

from sentry_tunnel.config import (
    CONFIG_PATH_ENV,
    ConfigError,
    ProjectIdSet,
    TunnelConfig,
    load_config,
    parse_remote_host,
)
from sentry_tunnel.envelope.gate import MAX_CONTENT_LENGTH


class TestProjectIdSet:
    """Tests for project id allow-list parsing and membership."""

    def test_explicit_ids(self):
        ids = ProjectIdSet.parse([1, "2", " 3 "])
        assert 1 in ids and 2 in ids and 3 in ids
        assert 4 not in ids

    def test_ranges_inclusive(self):
        ids = ProjectIdSet.parse(["10-20"])
        assert 10 in ids and 15 in ids and 20 in ids
        assert 9 not in ids and 21 not in ids

    def test_mixed(self):
        ids = ProjectIdSet.parse([5, "100-102"])
        assert ids.to_list() == [5, "100-102"]
        assert str(ids) == "5, 100-102"

    def test_blank_entries_ignored(self):
        assert not ProjectIdSet.parse(["", "  "])

    def test_empty_set_is_falsy(self):
        assert not ProjectIdSet()
        assert str(ProjectIdSet()) == "<none>"

    def test_non_int_membership(self):
        assert "5" not in ProjectIdSet.parse([5])

    @pytest.mark.parametrize("entry", ["abc", "5-", "-5", "20-10", "1.5", -3, True])
    def test_invalid_entries(self, entry):
        with pytest.raises(ConfigError):
            ProjectIdSet.parse([entry])


class TestRemoteHosts:
    """Tests for remote host normalization."""

    def test_bare_host_kept(self):
        assert parse_remote_host(" sentry.example.com ") == "sentry.example.com"

    def test_url_yields_host(self):
        assert parse_remote_host("https://sentry.example.com") == "sentry.example.com"
        assert parse_remote_host("http://sentry.local:9000/") == "sentry.local"

    def test_url_without_host_rejected(self):
        with pytest.raises(ConfigError):
            parse_remote_host("https://")


class TestTunnelConfig:
    """Tests for TunnelConfig defaults and validation."""

    def test_defaults_deny_everything(self):
        config = TunnelConfig()
        assert config.remote_hosts == ()
        assert not config.project_ids
        assert config.project_id_is_allowed(1) is False

    def test_defaults(self):
        config = TunnelConfig()
        assert config.tunnel_path == "/tunnel"
        assert config.listen_host == "0.0.0.0"
        assert config.listen_port == 7878
        assert config.trust_x_forwarded_for is False
        assert config.max_content_length == MAX_CONTENT_LENGTH
        assert config.audit_log_path is None

    def test_config_is_immutable(self):
        config = TunnelConfig()
        with pytest.raises(AttributeError):
            config.remote_hosts = ("evil.example",)

    def test_max_content_length_cannot_exceed_limit(self):
        with pytest.raises(ConfigError):
            TunnelConfig(max_content_length=MAX_CONTENT_LENGTH + 1)

    def test_max_content_length_can_be_lowered(self):
        assert TunnelConfig(max_content_length=1000).max_content_length == 1000

    @pytest.mark.parametrize(
        "changes",
        [
            {"tunnel_path": "tunnel"},
            {"tunnel_path": "/healthz"},
            {"listen_port": 0},
            {"listen_port": 70000},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values(self, changes):
        with pytest.raises(ConfigError):
            TunnelConfig(**changes)

    def test_replace_ignores_none(self):
        config = TunnelConfig(listen_port=9000).replace(listen_port=None, tunnel_path="/t")
        assert config.listen_port == 9000
        assert config.tunnel_path == "/t"


class TestLoadConfig:
    """Tests for loading config from YAML and the environment."""

    def _write(self, tmp_path, data) -> str:
        path = tmp_path / "tunnel.yaml"
        path.write_text(yaml.dump(data), encoding="utf-8")
        return str(path)

    def test_no_sources_gives_defaults(self):
        assert load_config(environ={}) == TunnelConfig()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml", environ={}) == TunnelConfig()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "tunnel.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path, environ={}) == TunnelConfig()

    def test_full_yaml(self, tmp_path):
        path = self._write(
            tmp_path,
            {
                "tunnel": {
                    "path": "/bugs",
                    "host": "127.0.0.1",
                    "port": 9000,
                    "trust_x_forwarded_for": True,
                    "max_content_length": 5000,
                },
                "remote_hosts": ["sentry.example.com", "https://o1.ingest.sentry.io"],
                "project_ids": [42, "100-200"],
                "audit_log_path": str(tmp_path / "audit.log"),
                "log_level": "debug",
            },
        )
        config = load_config(path, environ={})
        assert config.tunnel_path == "/bugs"
        assert config.listen_host == "127.0.0.1"
        assert config.listen_port == 9000
        assert config.trust_x_forwarded_for is True
        assert config.max_content_length == 5000
        assert config.remote_hosts == ("sentry.example.com", "o1.ingest.sentry.io")
        assert config.project_id_is_allowed(42)
        assert config.project_id_is_allowed(150)
        assert not config.project_id_is_allowed(43)
        assert config.audit_log_path == str(tmp_path / "audit.log")
        assert config.log_level == "DEBUG"

    def test_comma_separated_yaml_strings(self, tmp_path):
        path = self._write(tmp_path, {"remote_hosts": "a.example,b.example", "project_ids": "1,2"})
        config = load_config(path, environ={})
        assert config.remote_hosts == ("a.example", "b.example")
        assert config.project_id_is_allowed(2)

    def test_config_path_from_env(self, tmp_path):
        path = self._write(tmp_path, {"remote_hosts": ["sentry.example.com"]})
        config = load_config(environ={CONFIG_PATH_ENV: path})
        assert config.remote_hosts == ("sentry.example.com",)

    def test_env_overrides_yaml(self, tmp_path):
        path = self._write(tmp_path, {"remote_hosts": ["yaml.example"], "project_ids": [1]})
        config = load_config(
            path,
            environ={
                "TUNNEL_REMOTE_HOSTS": "https://env.example, other.example",
                "TUNNEL_PROJECT_IDS": "7,10-12",
                "TUNNEL_PATH": "/envelope",
                "TUNNEL_IP": "127.0.0.1",
                "TUNNEL_LISTEN_PORT": "8080",
                "TUNNEL_TRUST_X_FORWARDED_FOR": "true",
                "TUNNEL_LOG_LEVEL": "warning",
            },
        )
        assert config.remote_hosts == ("env.example", "other.example")
        assert config.project_id_is_allowed(11)
        assert not config.project_id_is_allowed(1)
        assert config.tunnel_path == "/envelope"
        assert config.listen_host == "127.0.0.1"
        assert config.listen_port == 8080
        assert config.trust_x_forwarded_for is True
        assert config.log_level == "WARNING"

    def test_env_read_from_os_environ(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        monkeypatch.setenv("TUNNEL_REMOTE_HOSTS", "sentry.example.com")
        monkeypatch.setenv("TUNNEL_PROJECT_IDS", "3")
        config = load_config()
        assert config.remote_hosts == ("sentry.example.com",)
        assert config.project_id_is_allowed(3)

    @pytest.mark.parametrize(
        "environ",
        [
            {"TUNNEL_LISTEN_PORT": "eighty"},
            {"TUNNEL_TRUST_X_FORWARDED_FOR": "maybe"},
            {"TUNNEL_PROJECT_IDS": "x"},
        ],
    )
    def test_invalid_env_values(self, environ):
        with pytest.raises(ConfigError):
            load_config(environ=environ)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "tunnel.yaml"
        path.write_text("tunnel: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "tunnel.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_bad_port_in_yaml(self, tmp_path):
        path = self._write(tmp_path, {"tunnel": {"port": "not-a-port"}})
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_warns_when_allow_lists_empty(self, caplog):
        load_config(environ={})
        assert "No remote hosts configured" in caplog.text
        assert "No project ids configured" in caplog.text
