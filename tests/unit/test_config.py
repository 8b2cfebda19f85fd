"""
Tests for layered configuration loading.
"""

from pathlib import Path

import pytest

from src.app_shell.config import (
    DEFAULT_CONFIG_DIR,
    ConfigError,
    Environment,
    deep_merge,
    env_overrides,
    load_settings,
)

BASE_YAML = """
application:
  port: 8000
  site_name: Test List
database:
  path: ./data/test.db
email_client:
  base_url: ""
  sender_email: sender@smail.com
  timeout_milliseconds: 2500
logging:
  level: INFO
"""


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    (tmp_path / "base.yaml").write_text(BASE_YAML)
    (tmp_path / "local.yaml").write_text("application:\n  host: 127.0.0.1\n")
    (tmp_path / "production.yaml").write_text(
        "application:\n  host: 0.0.0.0\n  base_url: https://lists.alpha.org\n"
    )
    return tmp_path


class TestLoadSettings:
    def test_defaults_to_local(self, config_dir: Path) -> None:
        settings = load_settings(config_dir, environ={})

        assert settings.application.host == "127.0.0.1"
        assert settings.application.site_name == "Test List"
        assert settings.database.path == "./data/test.db"
        assert settings.email_client.timeout() == 2.5

    def test_environment_file_overlays_base(self, config_dir: Path) -> None:
        settings = load_settings(config_dir, environ={"APP_ENVIRONMENT": "production"})

        assert settings.application.host == "0.0.0.0"
        assert settings.application.base_url == "https://lists.alpha.org"
        assert settings.application.port == 8000

    def test_env_variables_override_files(self, config_dir: Path) -> None:
        settings = load_settings(
            config_dir,
            environ={
                "APP_APPLICATION__PORT": "9001",
                "APP_EMAIL_CLIENT__AUTHORIZATION_TOKEN": "secret",
            },
        )

        assert settings.application.port == 9001
        assert settings.email_client.authorization_token == "secret"

    def test_unknown_environment_fails(self, config_dir: Path) -> None:
        with pytest.raises(ConfigError, match="not a supported environment"):
            load_settings(config_dir, environ={"APP_ENVIRONMENT": "staging"})

    def test_missing_file_fails(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path, environ={})

    def test_invalid_value_fails(self, config_dir: Path) -> None:
        with pytest.raises(ConfigError, match="validation failed"):
            load_settings(config_dir, environ={"APP_APPLICATION__PORT": "not-a-port"})

    def test_invalid_sender_fails(self, config_dir: Path) -> None:
        with pytest.raises(ConfigError, match="sender"):
            load_settings(config_dir, environ={"APP_EMAIL_CLIENT__SENDER_EMAIL": "nope"})

    def test_invalid_yaml_fails(self, config_dir: Path) -> None:
        (config_dir / "local.yaml").write_text("application: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config_dir, environ={})

    @pytest.mark.parametrize("environment", ["local", "production"])
    def test_shipped_configuration_loads(self, environment: str) -> None:
        settings = load_settings(DEFAULT_CONFIG_DIR, environment=environment, environ={})
        assert settings.email_client.sender_email


class TestHelpers:
    def test_environment_parse_is_case_insensitive(self) -> None:
        assert Environment.parse(" Production ") == Environment.PRODUCTION

    def test_deep_merge(self) -> None:
        merged = deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"c": 4}})
        assert merged == {"a": {"b": 1, "c": 4}, "d": 3}

    def test_env_overrides_ignores_unrelated_variables(self) -> None:
        overrides = env_overrides(
            {
                "APP_ENVIRONMENT": "local",
                "APP_DATABASE__PATH": "/tmp/x.db",
                "APP_NOSECTION": "x",
                "HOME": "/root",
            }
        )
        assert overrides == {"database": {"path": "/tmp/x.db"}}
