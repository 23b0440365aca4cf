"""Comwatt Monitor: headless polling client for the Comwatt energy API."""

try:
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("comwatt-monitor")
except Exception:
    __version__ = "dev"
