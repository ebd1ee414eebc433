from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import Table
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from library_catalog.storage.base import import_all_models

_db_service: "DatabaseService | None" = None


def build_sqlite_url(db_path: Path) -> str:
    resolved = db_path.resolve()
    return f"sqlite+aiosqlite:///{resolved.as_posix()}"


class DatabaseService:
    def __init__(self, db_url: str):
        self.db_url = db_url
        self.engine: AsyncEngine = create_async_engine(db_url, future=True)
        self._sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)
        import_all_models()

    async def create_table(self, table: Table) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(table.create, checkfirst=True)

    @asynccontextmanager
    async def with_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._sessionmaker() as session:
            yield session

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for a single unit of work.

        The session is committed if the block finishes and rolled back if it
        raises. The exception is re-raised for the repository to classify.
        """

        async with self.with_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                logger.debug("Rolling back session after error")
                await session.rollback()
                raise

    async def dispose(self) -> None:
        await self.engine.dispose()


def init_db_service(db_path: Path) -> DatabaseService:
    global _db_service
    if _db_service is None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        _db_service = DatabaseService(build_sqlite_url(db_path))
        logger.info("Database service opened at {}", db_path)
    return _db_service


async def shutdown_db_service() -> None:
    global _db_service
    if _db_service is None:
        return
    await _db_service.dispose()
    _db_service = None
