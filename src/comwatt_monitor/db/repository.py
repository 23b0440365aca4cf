"""Data access layer for settings and remembered users."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Repository:
    """Centralised data access for all tables."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    # ── Settings ────────────────────────────────────────────

    async def get_setting(self, key: str) -> str | None:
        async with self.db.execute(
            "SELECT value FROM settings WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else None

    async def get_all_settings(self) -> dict[str, str]:
        async with self.db.execute("SELECT key, value FROM settings") as cursor:
            rows = await cursor.fetchall()
            return {r[0]: r[1] for r in rows}

    async def set_setting(self, key: str, value: str) -> None:
        await self.db.execute(
            """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                              updated_at = excluded.updated_at""",
            (key, value, _now()),
        )
        await self.db.commit()

    async def delete_setting(self, key: str) -> bool:
        async with self.db.execute("DELETE FROM settings WHERE key = ?", (key,)) as cursor:
            deleted = cursor.rowcount > 0
        await self.db.commit()
        return deleted

    async def clear_settings(self) -> None:
        await self.db.execute("DELETE FROM settings")
        await self.db.commit()
        logger.info("All settings cleared")

    # ── Users ───────────────────────────────────────────────

    async def remember_user(self, email: str, password_hash: str) -> int:
        """Insert or refresh the remembered user and mark it as last logged in."""
        now = _now()
        await self.db.execute(
            """INSERT INTO users (email, password_hash, created_at, last_login_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(email) DO UPDATE SET password_hash = excluded.password_hash,
                                                last_login_at = excluded.last_login_at""",
            (email, password_hash, now, now),
        )
        await self.db.commit()
        async with self.db.execute(
            "SELECT id FROM users WHERE email = ?", (email,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def get_remembered_user(self) -> dict[str, Any] | None:
        """The most recently logged-in user, if any."""
        async with self.db.execute(
            "SELECT * FROM users ORDER BY last_login_at DESC, id DESC LIMIT 1"
        ) as cursor:
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def forget_users(self) -> int:
        async with self.db.execute("DELETE FROM users") as cursor:
            count = cursor.rowcount
        await self.db.commit()
        return count
