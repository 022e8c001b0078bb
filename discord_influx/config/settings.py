"""Configuration management using pydantic-settings.

Settings are read from, in increasing order of precedence:
- environment variables (DISCORD_TOKEN, INFLUXDB_URL, ...)
- an optional JSON config file (config.json)
- command line flags (applied with AppSettings.with_overrides)

Secrets can also be read from files through the *_FILE variables, which win
over the plain variables.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "DiscordBot (https://github.com/discord-influx, 0.1.0)"


class ConfigError(Exception):
    """Raised when required configuration is missing or unreadable."""


def _read_secret_file(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ValueError(f"cannot read secret file {path}: {e}") from e


class AppSettings(BaseSettings):
    """Application settings with validation."""

    discord_token: str = ""
    discord_token_file: str = ""
    discord_user_agent: str = DEFAULT_USER_AGENT

    influxdb_url: str = ""
    influxdb_token: str = ""
    influxdb_token_file: str = ""
    influxdb_org: str = ""
    influxdb_bucket: str = ""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    @model_validator(mode="after")
    def resolve_secret_files(self) -> "AppSettings":
        """Load tokens from *_FILE paths and strip surrounding whitespace."""
        if self.discord_token_file:
            self.discord_token = _read_secret_file(self.discord_token_file)
        if self.influxdb_token_file:
            self.influxdb_token = _read_secret_file(self.influxdb_token_file)
        self.discord_token = self.discord_token.strip()
        self.influxdb_token = self.influxdb_token.strip()
        return self

    @classmethod
    def from_json(cls, path: str | Path = "config.json") -> "AppSettings":
        """Load settings from a JSON config file, falling back to the environment.

        A missing file is not an error; the environment alone may be enough.
        """
        config_path = Path(path)
        data: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "AppSettings":
        """Return a copy with the non-None overrides applied."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return type(self).model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def require_discord(self) -> None:
        if not self.discord_token:
            raise ConfigError(
                "No Discord token found (set DISCORD_TOKEN or DISCORD_TOKEN_FILE)"
            )

    def require_influx(self) -> None:
        if not self.influxdb_url:
            raise ConfigError("Missing InfluxDB URL (--influxdb-url or INFLUXDB_URL)")
        if not self.influxdb_token:
            raise ConfigError(
                "No InfluxDB token found (set INFLUXDB_TOKEN or INFLUXDB_TOKEN_FILE)"
            )
        if not self.influxdb_bucket:
            raise ConfigError(
                "Missing InfluxDB bucket (--influxdb-bucket or INFLUXDB_BUCKET)"
            )


def load_config(path: str | Path = "config.json") -> AppSettings:
    """Load configuration, turning validation and parse failures into ConfigError."""
    try:
        return AppSettings.from_json(path)
    except (ValidationError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
