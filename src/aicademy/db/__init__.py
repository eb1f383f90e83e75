"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- Repository functions per table group (users, classes, modules,
  assignments, progress)
"""

from aicademy.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
