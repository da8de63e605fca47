"""Runtime settings for talking to the target API.

Priority: CLI flags > JSON config file > environment > defaults. The API
document's info block names the bridge; its first server URL is used only
while the base URL is still the localhost default.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000/api"
DEFAULT_CONFIG_FILE = Path("apibridge.config.json")


class Settings(BaseSettings):
    """Connection and run settings, read from APIBRIDGE_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="APIBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str = Field(default=DEFAULT_BASE_URL, alias="API_BASE_URL")
    api_key: str = Field(default="", alias="API_KEY")
    timeout: float = 10.0
    name: str = "APIBridge"
    version: str = "1.0.0"
    stop_on_error: bool = True
    context_max_entries: int | None = Field(default=None, ge=1)

    def merge_spec_info(self, info: Mapping[str, Any], servers: list[Mapping[str, Any]]) -> None:
        """Take name/version from the document, and its first server URL if still on localhost."""
        self.name = info.get("title") or self.name
        self.version = str(info.get("version") or self.version)
        if servers and servers[0].get("url") and self.base_url == DEFAULT_BASE_URL:
            self.base_url = servers[0]["url"]

    def validate_settings(self) -> None:
        errors = []
        if not self.base_url:
            errors.append("base_url is required")
        if not self.name:
            errors.append("name is required")
        if not self.version:
            errors.append("version is required")
        if errors:
            raise ConfigError(f"Configuration validation failed: {', '.join(errors)}")

    @property
    def user_agent(self) -> str:
        return f"{self.name} v{self.version}"


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON config file; a missing file yields no overrides."""
    path = Path(path)
    if not path.exists():
        logger.warning("Config file %s not found, using environment and defaults", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not load config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    logger.debug("Loaded %d setting(s) from %s", len(data), path)
    return data


def _by_field_name(data: Mapping[str, Any]) -> dict[str, Any]:
    aliases = {field.alias: name for name, field in Settings.model_fields.items() if field.alias}
    return {aliases.get(key, key): value for key, value in data.items()}


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> Settings:
    """Build Settings from defaults, environment, an optional config file and overrides.

    Overrides whose value is None are ignored so unset CLI flags fall through.
    """
    data: dict[str, Any] = {}
    if config_file is not None:
        data.update(_by_field_name(read_config_file(config_file)))
    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings(**data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']} (got {err.get('input')!r})"
            for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc
