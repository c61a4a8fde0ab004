from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)

from campus_rbac.core.config import settings
from campus_rbac.core.models import Base


# ----------------------------------------------------------------------
# 1. Database Manager Class
# ----------------------------------------------------------------------

class DatabaseManager:
    """
    Manages the SQLAlchemy AsyncEngine and the AsyncSession factory.

    Encapsulates database connection setup and session creation logic for
    the application. Production runs on PostgreSQL through asyncpg; local
    development and the test-suite use SQLite through aiosqlite.
    """

    def __init__(self, db_url: str):
        """
        Initializes the DatabaseManager with the database connection URL.

        Args:
            db_url (str): The connection string for the asynchronous database driver.
        """
        self._engine: AsyncEngine = create_async_engine(
            db_url,
            # Checks connection validity on pool checkout.
            pool_pre_ping=True,
            echo=settings.DB_ECHO,
        )

        self._async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            bind=self._engine,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def async_session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._async_session_factory

    async def create_all(self) -> None:
        """Creates every mapped table that does not exist yet."""
        import campus_rbac.api.v1.models  # noqa: F401  registers the mappers

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()


db_manager = DatabaseManager(settings.ASYNC_DATABASE_URL)


# ----------------------------------------------------------------------
# 2. FastAPI Dependencies
# ----------------------------------------------------------------------

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The session is closed (rolling back anything left uncommitted) once the
    request has finished, regardless of whether an exception occurred.

    Yields:
        AsyncSession: An asynchronous SQLAlchemy session bound to the database.
    """
    async with db_manager.async_session_factory() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    FastAPI dependency for batch jobs that open one session per atomic unit
    of work instead of sharing the request session.
    """
    return db_manager.async_session_factory
