"""SQL table definitions for the local state store."""

SCHEMA_VERSION = 1

TABLES = [
    # ── Schema ──────────────────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id      INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL
    )
    """,

    # ── Settings (key/value) ────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS settings (
        key         TEXT PRIMARY KEY,
        value       TEXT NOT NULL,
        updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
    )
    """,

    # ── Remembered users ────────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS users (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        email           TEXT NOT NULL UNIQUE,
        password_hash   TEXT NOT NULL,
        created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
        last_login_at   TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_users_last_login ON users(last_login_at)",
]
