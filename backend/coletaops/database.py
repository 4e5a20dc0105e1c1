"""Database engine, session factory, and declarative base.

Every request gets one AsyncSession from get_db().  The session is
committed when the endpoint returns and rolled back on any exception,
so a request is the unit of work: multi-row workflow writes (closing a
sorting batch, recording a stock movement) either fully commit or leave
no trace.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from coletaops.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Yield a request-scoped session (commit on success, rollback on error)."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
