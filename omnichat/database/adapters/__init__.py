"""Database adapters for the supported backends."""

from .postgresql_adapter import PostgreSQLAdapter
from .sqlite_adapter import SQLiteAdapter

__all__ = ["PostgreSQLAdapter", "SQLiteAdapter"]
