"""
Database lifecycle management.

Selects an adapter from the URL scheme, creates the engine with a retried
health check (exponential backoff with jitter for transient failures such as
a database container that is still starting), creates the schema and hands
out the auto-commit session factory used by every repository.
"""

import asyncio
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from omnichat.core.logging.logger import get_logger

# Registers every table on SQLModel.metadata before create_all runs
from omnichat.models import database_models  # noqa: F401

from .adapter import DatabaseAdapter, SessionFactory, build_session_factory
from .adapters import PostgreSQLAdapter, SQLiteAdapter

logger = get_logger(__name__)


def get_adapter(url: str) -> DatabaseAdapter:
    """Pick the adapter matching a connection URL."""
    if url.startswith("sqlite"):
        return SQLiteAdapter()
    if url.startswith(("postgresql", "postgres")):
        return PostgreSQLAdapter()
    raise ValueError(f"Unsupported database URL scheme: {url.split(':', 1)[0]}")


class Database:
    """
    Owns the async engine and session factory.

    Example:
        database = Database("sqlite+aiosqlite:///./omnichat.db")
        await database.initialize()
        async with database.session() as session:
            ...
        await database.dispose()
    """

    _TRANSIENT_ERROR_TYPES = (
        OSError,
        ConnectionError,
        TimeoutError,
    )

    _TRANSIENT_ERROR_PATTERNS = (
        "connection refused",
        "connection reset",
        "connection timed out",
        "could not connect",
        "server closed the connection",
        "name or service not known",
        "database is locked",
    )

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        create_schema: bool = True,
    ):
        self.url = url
        self.echo = echo
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.create_schema = create_schema
        self.adapter = get_adapter(url)
        self._engine: AsyncEngine | None = None
        self._session_factory: SessionFactory | None = None

    @property
    def is_initialized(self) -> bool:
        return self._session_factory is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized")
        return self._engine

    @property
    def session_factory(self) -> SessionFactory:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized")
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on exit and rolls back on error."""
        async with self.session_factory() as session:
            yield session

    async def initialize(self) -> None:
        """Create the engine, wait for the database and create the schema."""
        if self.is_initialized:
            return

        self._engine = await self.adapter.create_engine(self.url, echo=self.echo)

        if not await self._wait_until_healthy():
            await self._engine.dispose()
            self._engine = None
            raise ConnectionError(
                f"{self.adapter.name} database unreachable after {self.max_retries} attempts"
            )

        if self.create_schema:
            await self.adapter.initialize_schema(self._engine)

        self._session_factory = build_session_factory(self._engine)
        logger.info(f"✅ Database ready ({self.adapter.name})")

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None

    async def health_check(self) -> bool:
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    def _is_transient_error(self, error: Exception) -> bool:
        if isinstance(error, self._TRANSIENT_ERROR_TYPES):
            return True
        error_msg = str(error).lower()
        return any(pattern in error_msg for pattern in self._TRANSIENT_ERROR_PATTERNS)

    def _calculate_backoff(self, attempt: int) -> float:
        delay = self.base_delay * (2**attempt)
        # Jitter between 0.5x and 1.5x
        delay *= 0.5 + random.random()
        return min(delay, self.max_delay)

    async def _wait_until_healthy(self) -> bool:
        last_exception: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with self.engine.connect() as conn:
                    result = await conn.execute(text("SELECT 1"))
                    if result.scalar() == 1:
                        if attempt > 0:
                            logger.info(
                                f"Database connection established on attempt "
                                f"{attempt + 1}/{self.max_retries}"
                            )
                        return True
            except Exception as e:
                last_exception = e
                if not self._is_transient_error(e):
                    logger.error(f"Non-transient error connecting to database: {e}")
                    return False

            if attempt < self.max_retries - 1:
                delay = self._calculate_backoff(attempt)
                logger.warning(
                    f"Database connection failed (attempt {attempt + 1}/{self.max_retries}). "
                    f"Retrying in {delay:.2f}s..."
                )
                await asyncio.sleep(delay)

        if last_exception:
            logger.error(
                f"Database connection failed after {self.max_retries} attempts: "
                f"{last_exception}"
            )
        return False
