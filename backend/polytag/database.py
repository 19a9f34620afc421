"""Async SQLAlchemy engine and session factory.

The engine and session factory are built once at startup and kept on
``app.state``. Usage in routes:

    from polytag.database import get_db

    @router.get("/items")
    async def list_items(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(Item))
        return result.scalars().all()
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from polytag.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the process-wide engine (and its connection pool)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        return create_async_engine(settings.DATABASE_URL, echo=False)
    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request):
    """FastAPI dependency that yields an async DB session."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
