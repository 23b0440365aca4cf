"""Configuration management for Comwatt Monitor."""

from comwatt_monitor.config.schema import AppConfig
from comwatt_monitor.config.manager import ConfigManager

__all__ = ["AppConfig", "ConfigManager"]
