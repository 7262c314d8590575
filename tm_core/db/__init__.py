"""Database helpers for SQLite translation-memory files."""

from tm_core.db.migrations import migrate_to_latest
from tm_core.db.schema import initialize_database
from tm_core.db.session import session_for_engine

__all__ = ["initialize_database", "migrate_to_latest", "session_for_engine"]
