"""Tests for database engine and repository."""

from __future__ import annotations

from pathlib import Path

import pytest

from comwatt_monitor.db.engine import close_db, get_db, init_db
from comwatt_monitor.db import migrations
from comwatt_monitor.db.migrations import get_schema_version, run_migrations
from comwatt_monitor.db.models import SCHEMA_VERSION
from comwatt_monitor.db.repository import Repository


@pytest.mark.asyncio
class TestEngine:
    async def test_schema_version_recorded(self, db) -> None:
        assert await get_schema_version(db) == SCHEMA_VERSION

    async def test_wal_mode(self, db) -> None:
        async with db.execute("PRAGMA journal_mode") as cursor:
            row = await cursor.fetchone()
        assert row[0].lower() == "wal"

    async def test_reopen_keeps_data(self, tmp_path: Path) -> None:
        path = tmp_path / "state.db"
        conn = await init_db(path)
        await Repository(conn).set_setting("site_id", "42")
        await close_db()

        conn = await init_db(path)
        assert await Repository(conn).get_setting("site_id") == "42"
        await close_db()

    async def test_corrupt_file_is_replaced(self, tmp_path: Path) -> None:
        path = tmp_path / "state.db"
        path.write_bytes(b"this is not a sqlite database" * 200)

        conn = await init_db(path)
        repo = Repository(conn)
        await repo.set_setting("k", "v")
        assert await repo.get_setting("k") == "v"
        await close_db()

        backups = [p for p in tmp_path.iterdir() if ".corrupt-" in p.name]
        assert backups

    async def test_upgrade_restores_missing_tables(self, db, monkeypatch) -> None:
        await db.execute("DROP TABLE users")
        await db.commit()
        monkeypatch.setattr(migrations, "SCHEMA_VERSION", SCHEMA_VERSION + 1)

        await run_migrations(db)

        assert await get_schema_version(db) == SCHEMA_VERSION + 1
        await Repository(db).remember_user("me@example.com", "a" * 64)
        assert (await Repository(db).get_remembered_user())["email"] == "me@example.com"

    async def test_get_db_after_close_raises(self, tmp_path: Path) -> None:
        await init_db(tmp_path / "x.db")
        assert await get_db() is not None
        await close_db()
        with pytest.raises(RuntimeError):
            await get_db()


@pytest.mark.asyncio
class TestRepository:
    async def test_settings_roundtrip(self, repo: Repository) -> None:
        assert await repo.get_setting("site_id") is None
        await repo.set_setting("site_id", "7")
        await repo.set_setting("site_id", "8")
        assert await repo.get_setting("site_id") == "8"
        assert await repo.get_all_settings() == {"site_id": "8"}

    async def test_delete_setting(self, repo: Repository) -> None:
        await repo.set_setting("site_id", "7")
        assert await repo.delete_setting("site_id") is True
        assert await repo.delete_setting("site_id") is False
        assert await repo.get_setting("site_id") is None

    async def test_clear_settings(self, repo: Repository) -> None:
        await repo.set_setting("a", "1")
        await repo.set_setting("b", "2")
        await repo.clear_settings()
        assert await repo.get_all_settings() == {}

    async def test_remember_user_upserts(self, repo: Repository) -> None:
        first = await repo.remember_user("me@example.com", "a" * 64)
        second = await repo.remember_user("me@example.com", "b" * 64)
        assert first == second

        user = await repo.get_remembered_user()
        assert user is not None
        assert user["email"] == "me@example.com"
        assert user["password_hash"] == "b" * 64

    async def test_most_recent_user_is_remembered(self, repo: Repository) -> None:
        await repo.remember_user("old@example.com", "a" * 64)
        await repo.remember_user("new@example.com", "b" * 64)
        user = await repo.get_remembered_user()
        assert user["email"] == "new@example.com"

    async def test_forget_users(self, repo: Repository) -> None:
        assert await repo.get_remembered_user() is None
        await repo.remember_user("me@example.com", "a" * 64)
        assert await repo.forget_users() == 1
        assert await repo.get_remembered_user() is None
