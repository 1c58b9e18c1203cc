"""
Database engine and per-request sessions.

Every service call runs inside one session; the session is committed when
the request handler returns and rolled back if it raises, so audit events
and the state change they describe always land together.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from agency_portal.core.config import get_settings

settings = get_settings()


def engine_options(database_url: str) -> dict:
    options = {"echo": settings.debug}
    # SQLite (local runs, tests) has no server-side pool to size.
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (local development only; deployments run alembic)."""
    import agency_portal.models  # noqa: F401  (register tables on the metadata)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def session_scope():
    """One unit of work: commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping the request in a session_scope."""
    async with session_scope() as session:
        yield session
