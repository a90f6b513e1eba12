"""
Database handle with an explicit connect / disconnect lifecycle.

The application builds one ``Database`` at startup (see ``main.lifespan``),
keeps it on ``app.state`` and hands it to the stores through FastAPI
dependencies.  Tests construct their own handle against SQLite.
"""
import logging

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from postfeed.middleware import install_query_counter

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, url: str, **engine_kwargs) -> None:
        self.url = url
        self._engine_kwargs = engine_kwargs
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the engine and session factory.  Called once at startup."""
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, **self._engine_kwargs)
        install_query_counter(self._engine)
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database engine created for %s", self._engine.url.render_as_string(hide_password=True))

    async def disconnect(self) -> None:
        """Dispose of the connection pool.  Called once at shutdown."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database.connect() has not been called")
        return self._engine

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database.connect() has not been called")
        return self._sessionmaker()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(request: Request):
    async with get_database(request).session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
