# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database handle and session management.

The engine is owned by a ``Database`` object that is opened once at process
start (the app lifespan or a script's ``main``) and disposed at shutdown.
Nothing here creates an engine at import time.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from streamcat_server.config import Settings
from streamcat_server.models.base import Base


class Database:
    """Async engine plus session factory for one database URL."""

    def __init__(self, url: str, **engine_kwargs) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a handle with pool settings suited to the configured backend."""
        kwargs: dict = {"echo": False, "pool_pre_ping": True}
        if not settings.database_url.startswith("sqlite"):
            kwargs.update(pool_size=10, max_overflow=20)
        return cls(settings.database_url, **kwargs)

    def session(self) -> AsyncSession:
        return self.session_maker()

    async def create_all(self) -> None:
        """Create all tables. Call at startup."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI that yields a session from the app's database handle."""
    db: Database = request.app.state.db
    async with db.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
