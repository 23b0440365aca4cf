"""Database schema migrations."""

from __future__ import annotations

import logging

import aiosqlite

from comwatt_monitor.db.models import SCHEMA_VERSION, TABLES

logger = logging.getLogger(__name__)


async def run_migrations(db: aiosqlite.Connection) -> None:
    """Create the schema on a fresh database or bring an old one up to date."""
    current = await get_schema_version(db)

    if current == 0:
        logger.info("Creating database schema (version %d)", SCHEMA_VERSION)
        for statement in TABLES:
            await db.execute(statement)
        await db.execute(
            "INSERT OR REPLACE INTO schema_version (id, version) VALUES (1, ?)",
            (SCHEMA_VERSION,),
        )
        await db.commit()
    elif current < SCHEMA_VERSION:
        logger.info("Migrating database from version %d to %d", current, SCHEMA_VERSION)
        await _apply_migrations(db)
        await db.execute(
            "UPDATE schema_version SET version = ? WHERE id = 1",
            (SCHEMA_VERSION,),
        )
        await db.commit()
    else:
        logger.debug("Database schema is up to date (version %d)", current)


async def get_schema_version(db: aiosqlite.Connection) -> int:
    """Current schema version, 0 when the version table does not exist yet."""
    try:
        async with db.execute("SELECT version FROM schema_version WHERE id = 1") as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0
    except aiosqlite.OperationalError:
        return 0


async def _apply_migrations(db: aiosqlite.Connection) -> None:
    # CREATE ... IF NOT EXISTS makes re-running the table list safe for
    # databases created before a table was added.
    for statement in TABLES:
        await db.execute(statement)
