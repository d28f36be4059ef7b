"""PostgreSQL adapter using the asyncpg driver."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel


class PostgreSQLAdapter:
    """PostgreSQL adapter with connection pooling for production use."""

    name = "postgresql"

    def normalize_url(self, connection_string: str) -> str:
        if connection_string.startswith(("postgresql+asyncpg://", "postgres+asyncpg://")):
            return connection_string
        for scheme in ("postgresql://", "postgres://"):
            if connection_string.startswith(scheme):
                return connection_string.replace(scheme, "postgresql+asyncpg://", 1)
        raise ValueError(
            "PostgreSQL connection string must use postgresql+asyncpg:// scheme"
        )

    async def create_engine(self, connection_string: str, **kwargs: Any) -> AsyncEngine:
        default_config = {
            "pool_size": 20,
            "max_overflow": 40,
            "pool_timeout": 30,
            "pool_recycle": 3600,
            "pool_pre_ping": True,
            "echo": False,
        }
        default_config.update(kwargs)

        try:
            return create_async_engine(
                self.normalize_url(connection_string), **default_config
            )
        except ValueError:
            raise
        except Exception as e:
            raise ConnectionError(f"Failed to create PostgreSQL engine: {e}") from e

    async def initialize_schema(self, engine: AsyncEngine) -> None:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize PostgreSQL schema: {e}") from e
