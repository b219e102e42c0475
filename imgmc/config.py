"""Load provider settings from the per-user TOML config file."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .descriptor import DEFAULT_API_VERSION
from .errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "imgmc"
CONFIG_FILENAME = "config.toml"
DEFAULT_OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-image-1"


@dataclass(frozen=True)
class ProviderConfig:
    api_base: str
    api_key: str | None
    deployment: str
    api_version: str = DEFAULT_API_VERSION


@dataclass(frozen=True)
class Config:
    azure: ProviderConfig | None = None
    openai: ProviderConfig | None = None
    timeout_s: float | None = None

    def provider(self, name: str) -> ProviderConfig:
        if name == "azure":
            if self.azure is None:
                raise ConfigError("Azure configuration is missing")
            return self.azure
        if name == "openai":
            if self.openai is None:
                raise ConfigError("OpenAI configuration is missing")
            if not self.openai.api_key:
                raise ConfigError("OpenAI API key missing. Set [openai].api_key or OPENAI_API_KEY.")
            return self.openai
        raise ConfigError(f"Unknown provider: {name}")


def default_config_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/imgmc/config.toml`` (``~/.config`` when unset)."""
    xdg_home = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home and Path(xdg_home).is_absolute() else Path.home() / ".config"
    return base / APP_NAME / CONFIG_FILENAME


def load_config(path: Path | None = None) -> Config:
    config_path = path or default_config_path()
    if not config_path.exists():
        raise ConfigError(f"Config file not found at: {config_path}")
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read config file {config_path}: {exc}") from exc
    logger.debug("Loaded config from %s", config_path)
    return parse_config(data)


def parse_config(data: Mapping[str, Any]) -> Config:
    azure = _section(data, "azure")
    openai = _section(data, "openai")
    return Config(
        azure=_azure_config(azure) if azure is not None else None,
        openai=_openai_config(openai) if openai is not None else _openai_from_env(),
        timeout_s=_timeout(data.get("timeout_s")),
    )


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _azure_config(section: Mapping[str, Any]) -> ProviderConfig:
    return ProviderConfig(
        api_base=_required(section, "azure", "api_base"),
        api_key=_required(section, "azure", "api_key"),
        deployment=_required(section, "azure", "deployment"),
        api_version=str(section.get("api_version") or DEFAULT_API_VERSION),
    )


def _openai_config(section: Mapping[str, Any]) -> ProviderConfig:
    api_key = section.get("api_key") or os.getenv("OPENAI_API_KEY")
    return ProviderConfig(
        api_base=str(section.get("api_base") or DEFAULT_OPENAI_API_BASE),
        api_key=str(api_key) if api_key else None,
        deployment=str(section.get("model") or DEFAULT_OPENAI_MODEL),
    )


def _openai_from_env() -> ProviderConfig | None:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None
    return ProviderConfig(api_base=DEFAULT_OPENAI_API_BASE, api_key=api_key, deployment=DEFAULT_OPENAI_MODEL)


def _required(section: Mapping[str, Any], name: str, key: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"[{name}].{key} is required")
    return value


def _timeout(value: Any) -> float | None:
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"timeout_s must be a number, got {value!r}") from exc
    if timeout <= 0:
        raise ConfigError("timeout_s must be positive")
    return timeout
