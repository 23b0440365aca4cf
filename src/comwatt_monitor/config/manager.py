"""Configuration loading: YAML defaults, user overrides, then environment."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from comwatt_monitor.config.schema import AppConfig

logger = logging.getLogger(__name__)

# Environment variable -> (section, key). Applied last so secrets can stay
# out of config.yaml.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "COMWATT_EMAIL": ("account", "email"),
    "COMWATT_PASSWORD": ("account", "password"),
    "COMWATT_BASE_URL": ("api", "base_url"),
    "COMWATT_TIMEZONE": ("site", "timezone"),
    "COMWATT_DB_PATH": ("db", "path"),
    "COMWATT_LOG_LEVEL": ("logging", "level"),
}


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Nested override dict built from the ``COMWATT_*`` variables that are set."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(name)
        if value:
            overrides.setdefault(section, {})[key] = value
    return overrides


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Owns the validated ``AppConfig`` and the user override file.

    Only the user file is ever written; the shipped defaults and the
    environment are read-only inputs.
    """

    def __init__(
        self,
        defaults_path: Path | None = None,
        user_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._defaults_path = defaults_path or Path("config.defaults.yaml")
        self._user_path = user_path or Path("config.yaml")
        self._environ = environ
        self._config: AppConfig | None = None
        self._raw: dict[str, Any] = {}

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded. Call load() first.")
        return self._config

    def load(self) -> AppConfig:
        merged = deep_merge(_read_yaml(self._defaults_path), _read_yaml(self._user_path))
        from_env = env_overrides(self._environ)
        merged = deep_merge(merged, from_env)
        self._raw = merged
        self._config = AppConfig.model_validate(merged)
        logger.info(
            "Configuration loaded from %s (user file %s, %d environment overrides)",
            self._defaults_path,
            "present" if self._user_path.exists() else "absent",
            sum(len(keys) for keys in from_env.values()),
        )
        return self._config

    def get_raw(self) -> dict[str, Any]:
        return dict(self._raw)

    def to_json(self) -> str:
        """The effective config with the account password left out."""
        return self.config.model_dump_json(indent=2, exclude={"account": {"password"}})

    def save_user_config(self, updates: Mapping[str, Any]) -> AppConfig:
        """Merge ``updates`` into the user file and reload."""
        merged = deep_merge(_read_yaml(self._user_path), updates)
        self._user_path.write_text(
            yaml.safe_dump(merged, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
        if "account" in updates:
            # May now hold a password.
            self._user_path.chmod(0o600)
        return self.load()


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}
