"""Database engine, session factory and adapters."""

from .adapter import DatabaseAdapter, SessionFactory
from .manager import Database, get_adapter

__all__ = ["Database", "DatabaseAdapter", "SessionFactory", "get_adapter"]
