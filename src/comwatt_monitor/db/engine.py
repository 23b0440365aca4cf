"""SQLite database engine with WAL mode for concurrent reads."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from comwatt_monitor.db.migrations import run_migrations

logger = logging.getLogger(__name__)

_db: aiosqlite.Connection | None = None


async def _check_integrity(db_path: Path) -> bool:
    """Run PRAGMA integrity_check and return True if the database is healthy."""
    try:
        async with aiosqlite.connect(str(db_path)) as db:
            async with db.execute("PRAGMA integrity_check") as cursor:
                rows = await cursor.fetchall()
    except aiosqlite.DatabaseError:
        logger.error("Database integrity check raised an exception", exc_info=True)
        return False
    if len(rows) == 1 and str(rows[0][0]).lower() == "ok":
        return True
    logger.error(
        "Database integrity check failed: %s", "; ".join(str(r[0]) for r in rows[:10])
    )
    return False


def _move_aside(db_path: Path) -> Path:
    """Keep a corrupt database as a timestamped backup, WAL files included."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    backup = db_path.with_suffix(f".corrupt-{stamp}.db")
    for suffix in ("", "-wal", "-shm"):
        src = db_path.parent / (db_path.name + suffix)
        if src.exists():
            shutil.move(str(src), str(db_path.parent / (backup.name + suffix)))
    return backup


async def init_db(db_path: str | Path) -> aiosqlite.Connection:
    """Initialise the database connection with WAL mode and run migrations.

    The store only holds settings and the remembered user, both of which
    the user can re-enter, so a corrupt file is moved aside and a fresh
    database is created in its place.
    """
    global _db
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if db_path.exists() and not await _check_integrity(db_path):
        backup = _move_aside(db_path)
        logger.warning("Database corruption detected, moved to %s", backup)

    db = await aiosqlite.connect(str(db_path))
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA synchronous=NORMAL")
    await db.execute("PRAGMA busy_timeout=5000")
    db.row_factory = aiosqlite.Row

    await run_migrations(db)
    _db = db
    logger.info("Database initialised at %s (WAL mode)", db_path)
    return db


async def get_db() -> aiosqlite.Connection:
    """Get the active database connection."""
    if _db is None:
        raise RuntimeError("Database not initialised. Call init_db() first.")
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")
