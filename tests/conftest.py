"""Shared test fixtures for Comwatt Monitor."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import aiosqlite
import pytest
import pytest_asyncio

from comwatt_monitor.config.manager import ConfigManager
from comwatt_monitor.config.schema import AppConfig
from comwatt_monitor.db.engine import init_db
from comwatt_monitor.db.repository import Repository
from comwatt_monitor.settings_store import SettingsStore
from fakes import RecordingSession, StaticSettings


@pytest.fixture
def config() -> AppConfig:
    """Provide a default test configuration."""
    return AppConfig()


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """Provide a config manager with test paths."""
    defaults = tmp_path / "config.defaults.yaml"
    defaults.write_text("db:\n  path: ':memory:'\n")
    user = tmp_path / "config.yaml"
    mgr = ConfigManager(defaults_path=defaults, user_path=user, environ={})
    mgr.load()
    return mgr


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """Provide a fresh database file for each test."""
    conn = await init_db(tmp_path / "test.db")
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def repo(db: aiosqlite.Connection) -> Repository:
    """Provide a repository with a fresh database."""
    return Repository(db)


@pytest_asyncio.fixture
async def settings_store(repo: Repository) -> SettingsStore:
    return SettingsStore(repo)


@pytest.fixture
def site_settings() -> StaticSettings:
    return StaticSettings(site_id=1)


@pytest.fixture
def session() -> RecordingSession:
    return RecordingSession()
