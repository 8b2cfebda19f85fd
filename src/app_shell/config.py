"""
Service configuration.

Settings are read from configuration/base.yaml, then overlaid with
configuration/{environment}.yaml, where the environment comes from
APP_ENVIRONMENT (local or production, default local), and finally with
APP_<SECTION>__<KEY> environment variables. The merged
document is validated with pydantic; any problem fails fast with
ConfigError.
"""

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from src.domain.errors import DomainValidationError
from src.domain.identity import SubscriberEmail, parse_email

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "configuration"
ENVIRONMENT_VAR = "APP_ENVIRONMENT"
ENV_PREFIX = "APP_"


class ConfigError(Exception):
    """Configuration missing or invalid."""


class Environment(str, Enum):
    LOCAL = "local"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, raw: str) -> "Environment":
        try:
            return cls(raw.strip().lower())
        except ValueError as e:
            raise ConfigError(
                f"{raw} is not a supported environment. Use either `local` or `production`."
            ) from e


# --- Models ---


class ApplicationSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=0, le=65535)
    base_url: str = "http://127.0.0.1:8000"
    site_name: str = "Mailing List"


class DatabaseSettings(BaseModel):
    path: str = "./data/subscriptions.db"
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    migrations_dir: str | None = None


class EmailClientSettings(BaseModel):
    # Empty base_url selects the dev adapter (log instead of send).
    base_url: str = ""
    sender_email: str
    authorization_token: str = ""
    timeout_milliseconds: int = Field(default=10_000, gt=0)

    def sender(self) -> SubscriberEmail:
        try:
            return parse_email(self.sender_email)
        except DomainValidationError as e:
            raise ConfigError(f"Invalid sender email for email client: {e.reason}") from e

    def timeout(self) -> float:
        """Timeout in seconds."""
        return self.timeout_milliseconds / 1000


class LoggingSettings(BaseModel):
    level: str = "INFO"

    def numeric_level(self) -> int:
        level = logging.getLevelName(self.level.upper())
        if not isinstance(level, int):
            raise ConfigError(f"Unknown log level: {self.level}")
        return level


class Settings(BaseModel):
    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    email_client: EmailClientSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# --- Loading ---


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found at: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect APP_<SECTION>__<KEY> variables into a nested mapping.

    e.g. APP_EMAIL_CLIENT__AUTHORIZATION_TOKEN -> email_client.authorization_token
    """
    overrides: dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key == ENVIRONMENT_VAR:
            continue
        path = key[len(ENV_PREFIX) :].lower().split("__")
        if len(path) < 2 or not all(path):
            continue
        node = overrides
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value
    return overrides


def load_settings(
    config_dir: Path | None = None,
    environment: Environment | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load and validate settings.

    Precedence: environment variables > {environment}.yaml > base.yaml.

    Raises:
        ConfigError: If a file is missing, unparsable or fails validation
    """
    directory = config_dir or DEFAULT_CONFIG_DIR
    env = os.environ if environ is None else environ
    if environment is None:
        environment = env.get(ENVIRONMENT_VAR, Environment.LOCAL.value)
    if not isinstance(environment, Environment):
        environment = Environment.parse(environment)

    data = deep_merge(
        _read_yaml(directory / "base.yaml"),
        _read_yaml(directory / f"{environment.value}.yaml"),
    )
    data = deep_merge(data, env_overrides(env))

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e

    # Fail fast on a bad sender rather than on the first email.
    settings.email_client.sender()
    return settings
