"""Configuration: YAML + env overlay."""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from ircord.errors import BridgeConfigurationError
from ircord.login import DEFAULT_IDENTIFY_ACCEPTED, DEFAULT_IDENTIFY_PROMPT

# Env var -> dotted config key; env wins over the file
_ENV_OVERRIDES = {
    "DISCORD_TOKEN": "discord.token",
    "IRC_NICK": "irc.nick",
    "IRC_PASSWORD": "irc.password",
}

_REQUIRED = (
    "discord.token",
    "discord.channel_id",
    "irc.server",
    "irc.nick",
    "irc.channel",
)


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def _env_overlay(environ: Mapping[str, str]) -> dict[str, Any]:
    overlay: dict[str, Any] = {}
    for var, dotted in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        section, key = dotted.split(".", 1)
        overlay.setdefault(section, {})[key] = value
    return overlay


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        logger.warning("Config file not found: {}", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config {}: {}", path, exc)
        raise BridgeConfigurationError(
            f"invalid YAML in {path}", code="invalid_yaml", original_error=exc
        ) from exc
    if not isinstance(data, dict):
        logger.warning("Config file {} has invalid structure (expected dict)", path)
        return {}
    return data


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load config from YAML and overlay env-derived values.

    Loads .env via python-dotenv when present.
    """
    from dotenv import load_dotenv

    load_dotenv()
    return _deep_update(load_config(path), _env_overlay(os.environ))


class Config:
    """Read-only config accessor. Holds a private copy of the loaded data."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = copy.deepcopy(data or {})

    def validate(self) -> Config:
        """Raise BridgeConfigurationError when a required key is missing."""
        for section in ("discord", "irc"):
            value = self._data.get(section)
            if value is not None and not isinstance(value, dict):
                raise BridgeConfigurationError(
                    f"{section} must be a mapping",
                    code=f"invalid_{section}",
                    details={"type": type(value).__name__},
                )
        for key in _REQUIRED:
            if self.get(key) in (None, ""):
                raise BridgeConfigurationError(
                    f"missing required config key {key}",
                    code="missing_" + key.replace(".", "_"),
                    details={"key": key},
                )
        return self

    @property
    def raw(self) -> dict[str, Any]:
        """Copy of the raw config dict."""
        return copy.deepcopy(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'irc.channel')."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    @property
    def verbose(self) -> bool:
        return bool(self._data.get("verbose", False))

    # Discord

    @property
    def discord_token(self) -> str:
        return str(self.get("discord.token", ""))

    @property
    def discord_channel_id(self) -> str:
        return str(self.get("discord.channel_id", ""))

    @property
    def discord_name(self) -> str:
        """Display name used in status text ('X joined Discord')."""
        return str(self.get("discord.name", "Discord"))

    # IRC

    @property
    def irc_server(self) -> str:
        return str(self.get("irc.server", ""))

    @property
    def irc_port(self) -> int:
        return int(self.get("irc.port", 6667))

    @property
    def irc_tls(self) -> bool:
        return bool(self.get("irc.tls", False))

    @property
    def irc_nick(self) -> str:
        return str(self.get("irc.nick", ""))

    @property
    def irc_password(self) -> str:
        return str(self.get("irc.password", ""))

    @property
    def irc_channel(self) -> str:
        return str(self.get("irc.channel", ""))

    @property
    def irc_realname(self) -> str:
        return str(self.get("irc.realname", "IRCord"))

    @property
    def irc_name(self) -> str:
        return str(self.get("irc.name", "IRC"))

    @property
    def irc_identify_prompt(self) -> str:
        return str(self.get("irc.identify_prompt", DEFAULT_IDENTIFY_PROMPT))

    @property
    def irc_identify_accepted(self) -> str:
        return str(self.get("irc.identify_accepted", DEFAULT_IDENTIFY_ACCEPTED))

    @property
    def irc_whois_timeout_seconds(self) -> float:
        return float(self.get("irc.whois_timeout_seconds", 10))

    # Policy

    @property
    def automation_nick(self) -> str:
        """Automation identity whose output is never relayed."""
        return str(self.get("automation.nick", "Gunter"))

    @property
    def automation_marker(self) -> str:
        return str(self.get("automation.marker", "\x16"))

    @property
    def identity_cache_ttl_seconds(self) -> int:
        return int(self._data.get("identity_cache_ttl_seconds", 3600))

    @property
    def identity_cache_maxsize(self) -> int:
        return int(self._data.get("identity_cache_maxsize", 1024))

    @property
    def login_timeout_seconds(self) -> float | None:
        """None (from 0 or unset) waits for the handshakes indefinitely."""
        val = float(self._data.get("login_timeout_seconds", 0) or 0)
        return val if val > 0 else None
