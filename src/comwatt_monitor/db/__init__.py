"""Database engine and repository for Comwatt Monitor."""

from comwatt_monitor.db.engine import close_db, get_db, init_db
from comwatt_monitor.db.repository import Repository

__all__ = ["close_db", "get_db", "init_db", "Repository"]
