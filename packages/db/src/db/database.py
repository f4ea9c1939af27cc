# This project was developed with assistance from AI tools.
"""Async engine, session factory and the FastAPI session dependency.

The engine is a process-lifetime singleton: it is created at import time
(connections are opened lazily by the pool) and disposed from the API
lifespan on shutdown.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import db_settings

logger = logging.getLogger(__name__)

Base = declarative_base()

engine = create_async_engine(
    db_settings.DATABASE_URL,
    echo=db_settings.SQL_ECHO,
    pool_pre_ping=True,
    pool_size=db_settings.DB_POOL_SIZE,
    max_overflow=db_settings.DB_MAX_OVERFLOW,
    pool_timeout=db_settings.DB_POOL_TIMEOUT,
)

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yield a session, closed when the request ends."""
    async with SessionLocal() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections. Called from the API lifespan on shutdown."""
    await engine.dispose()
    logger.info("Database engine disposed")
