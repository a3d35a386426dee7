"""Database engine and session factory setup."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel


def create_db_engine(db_url: str, pool_size: int = 20) -> AsyncEngine:
    """Create the async engine.

    Args:
        db_url: postgresql+psycopg://... in production, sqlite+aiosqlite://... locally
        pool_size: Maximum number of pooled connections (ignored for SQLite)

    Returns:
        Async engine
    """
    if db_url.startswith("sqlite"):
        # SQLite picks its own pool class; pool sizing arguments are rejected
        return create_async_engine(db_url, echo=False)

    return create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
        echo=False,
    )


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: Database connection URL
        pool_size: Maximum number of connections in the pool

    Returns:
        Async session factory for creating database sessions
    """
    engine = create_db_engine(db_url, pool_size)

    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables from SQLModel metadata (no-op for existing tables).

    Used by tests and local SQLite setups; deployed databases go through Alembic.
    """
    import cimaise.models  # noqa: F401  (registers tables on the metadata)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def dialect_insert(session: AsyncSession):
    """Return the dialect-specific ``insert`` construct supporting ON CONFLICT.

    Both PostgreSQL and SQLite (3.24+) implement INSERT ... ON CONFLICT DO UPDATE
    with the same SQLAlchemy API; the generic insert() does not expose it.
    """
    if session.bind is not None and session.bind.dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert
