"""
Database adapter protocol.

Each adapter knows how to build an async engine for one backend and how to
create the schema on it. Session handling is shared by all adapters.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class DatabaseAdapter(Protocol):
    """Interface implemented by the SQLite and PostgreSQL adapters."""

    name: str

    def normalize_url(self, connection_string: str) -> str:
        """Return the connection string with the async driver selected."""
        ...

    async def create_engine(self, connection_string: str, **kwargs: Any) -> AsyncEngine:
        """
        Create an async SQLAlchemy engine for the database.

        Raises:
            ValueError: If the connection string uses an unsupported scheme
            ConnectionError: If unable to create the engine
        """
        ...

    async def initialize_schema(self, engine: AsyncEngine) -> None:
        """Create every table registered on SQLModel.metadata."""
        ...


def build_session_factory(engine: AsyncEngine) -> SessionFactory:
    """
    Create a session factory whose sessions commit on success and roll back
    on any exception.

    Example:
        async with session_factory() as session:
            session.add(row)
    """
    async_session_maker = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def session_factory():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return session_factory
