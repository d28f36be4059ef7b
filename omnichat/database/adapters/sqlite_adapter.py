"""SQLite adapter using the aiosqlite driver."""

from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SQLiteAdapter:
    """SQLite adapter for local development and tests."""

    name = "sqlite"

    def normalize_url(self, connection_string: str) -> str:
        if connection_string.startswith("sqlite+aiosqlite://"):
            return connection_string
        if connection_string.startswith("sqlite://"):
            return connection_string.replace("sqlite://", "sqlite+aiosqlite://", 1)
        raise ValueError("SQLite connection string must use sqlite+aiosqlite:// scheme")

    async def create_engine(self, connection_string: str, **kwargs: Any) -> AsyncEngine:
        default_config = {
            "echo": False,
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        default_config.update(kwargs)

        try:
            engine = create_async_engine(
                self.normalize_url(connection_string), **default_config
            )
        except ValueError:
            raise
        except Exception as e:
            raise ConnectionError(f"Failed to create SQLite engine: {e}") from e

        # Enforce foreign keys on every pooled connection
        event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
        return engine

    async def initialize_schema(self, engine: AsyncEngine) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(text("PRAGMA foreign_keys=ON"))
                await conn.run_sync(SQLModel.metadata.create_all)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize SQLite schema: {e}") from e
