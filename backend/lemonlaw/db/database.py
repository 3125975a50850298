"""
Lemon Law Fee Suite
Async Database Engine and Session Dependency

The engine is owned by the application lifespan and kept on
``app.state``; request handlers get sessions through ``get_db``.
"""
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from lemonlaw.core.config import settings

Base = declarative_base()


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    return create_async_engine(database_url or settings.DATABASE_URL, echo=settings.DEBUG)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the app's session factory"""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Database not initialised; start the app through its lifespan")
    async with session_factory() as session:
        yield session
