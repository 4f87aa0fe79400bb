"""Tests for settings and the connections file."""

from pathlib import Path

from pydantic import ValidationError
import pytest

from queue_explorer.config import (
    Settings,
    get_settings,
    load_connection_definitions,
    parse_connection_definitions,
    save_connection_definitions,
)
from queue_explorer.errors import ConfigurationError
from queue_explorer.models import ConnectionDefinition, RedisConfig

CONNECTIONS_YAML = """\
- name: local
  config:
    host: localhost
    port: 6379
- name: staging
  prefix: jobs
  config:
    url: redis://staging:6380/2
"""


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.connections_file == Path("connections.yaml")
        assert settings.log_level == "WARNING"
        assert settings.scan_count == 1000
        assert settings.job_list_limit == 10_000
        assert settings.queue_cache_file.name == "queues.json"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("QUEUE_EXPLORER_CONNECTIONS_FILE", "/etc/queues.yaml")
        monkeypatch.setenv("QUEUE_EXPLORER_LOG_LEVEL", "debug")
        monkeypatch.setenv("QUEUE_EXPLORER_JOB_LIST_LIMIT", "500")

        settings = Settings()

        assert settings.connections_file == Path("/etc/queues.yaml")
        assert settings.log_level == "DEBUG"
        assert settings.job_list_limit == 500

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("QUEUE_EXPLORER_LOG_LEVEL", "LOUD")

        with pytest.raises(ValidationError):
            Settings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestParseConnections:
    def test_empty_document(self):
        assert parse_connection_definitions(None) == []

    def test_not_a_list(self):
        with pytest.raises(ConfigurationError):
            parse_connection_definitions({"name": "local"})

    def test_invalid_entry(self):
        with pytest.raises(ConfigurationError, match="position 1"):
            parse_connection_definitions([{"name": "ok"}, {"config": {}}])

    def test_duplicate_names(self):
        with pytest.raises(ConfigurationError, match="Duplicate connection name: local"):
            parse_connection_definitions([{"name": "local"}, {"name": "local"}])


class TestConnectionsFile:
    def test_load_keeps_file_order(self, tmp_path):
        path = tmp_path / "connections.yaml"
        path.write_text(CONNECTIONS_YAML)

        definitions = load_connection_definitions(path)

        assert [d.name for d in definitions] == ["local", "staging"]
        assert definitions[0].prefix is None
        assert definitions[1].prefix == "jobs"
        assert definitions[1].config.url == "redis://staging:6380/2"

    def test_missing_file_means_no_connections(self, tmp_path):
        assert load_connection_definitions(tmp_path / "absent.yaml") == []

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "connections.yaml"
        path.write_text("- name: [local\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_connection_definitions(path)

    def test_saved_file_loads_back(self, tmp_path):
        path = tmp_path / "nested" / "connections.yaml"
        definitions = [
            ConnectionDefinition(
                name="local", prefix="bull", config=RedisConfig(host="redis", password="s3cret")
            )
        ]

        save_connection_definitions(path, definitions)

        assert path.read_text().startswith("# Queue Explorer connections")
        assert load_connection_definitions(path) == definitions


class TestRedisConfig:
    def test_empty_password_becomes_none(self):
        config = RedisConfig(password="", username="")

        assert config.password is None
        assert config.username is None

    def test_extra_options_pass_through(self):
        config = RedisConfig(host="redis", health_check_interval=30)

        kwargs = config.client_kwargs()

        assert kwargs["host"] == "redis"
        assert kwargs["health_check_interval"] == 30

    def test_tls_is_an_alias_of_ssl(self):
        config = RedisConfig.model_validate({"host": "redis", "tls": True})

        kwargs = config.client_kwargs()

        assert config.ssl is True
        assert kwargs["ssl"] is True
        assert "tls" not in kwargs
