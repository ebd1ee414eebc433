from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError

from library_catalog.render.table import Renderer
from library_catalog.storage.authors.base import AuthorRecord
from library_catalog.storage.books.base import BookRecord
from library_catalog.storage.db import DatabaseService
from library_catalog.storage.genres.base import GenreRecord
from library_catalog.storage.publishers.base import PublisherRecord
from library_catalog.storage.types import RowSet


@dataclass(frozen=True)
class JoinQuery:
    title: str
    headers: tuple[str, ...]
    statement: Select


def _author_join() -> JoinQuery:
    stmt = (
        select(
            BookRecord.title,
            BookRecord.year,
            BookRecord.genre_id,
            BookRecord.pages,
            BookRecord.publisher_id,
            AuthorRecord.full_name,
            AuthorRecord.date_of_birth,
            AuthorRecord.date_of_death,
        )
        .join(AuthorRecord, BookRecord.author_id == AuthorRecord.id)
        .order_by(BookRecord.id)
    )
    headers = ("title", "year", "genre", "pages", "publisher", "author", "date_of_birth", "date_of_death")
    return JoinQuery("Books with authors", headers, stmt)


def _publisher_join() -> JoinQuery:
    stmt = (
        select(
            BookRecord.title,
            BookRecord.author_id,
            BookRecord.year,
            BookRecord.genre_id,
            BookRecord.pages,
            PublisherRecord.name,
            PublisherRecord.address,
            PublisherRecord.phone,
            PublisherRecord.mail,
        )
        .join(PublisherRecord, BookRecord.publisher_id == PublisherRecord.id)
        .order_by(BookRecord.id)
    )
    headers = ("title", "author", "year", "genre", "pages", "publisher", "address", "phone", "mail")
    return JoinQuery("Books with publishers", headers, stmt)


def _genre_join() -> JoinQuery:
    stmt = (
        select(
            BookRecord.title,
            BookRecord.author_id,
            BookRecord.year,
            BookRecord.pages,
            BookRecord.publisher_id,
            GenreRecord.title,
            GenreRecord.description,
        )
        .join(GenreRecord, BookRecord.genre_id == GenreRecord.id)
        .order_by(BookRecord.id)
    )
    headers = ("title", "author", "year", "pages", "publisher", "genre", "description")
    return JoinQuery("Books with genres", headers, stmt)


JOIN_TARGETS = {
    "author": _author_join,
    "publisher": _publisher_join,
    "genre": _genre_join,
}


class Joiner:
    """Fixed book-with-X reports. Unlike the repositories, errors propagate."""

    def __init__(self, db: DatabaseService, renderer: Renderer):
        self.db = db
        self.renderer = renderer

    def _query(self, target: str) -> JoinQuery:
        build = JOIN_TARGETS.get(target)
        if build is None:
            logger.error("Unknown join target: {!r}", target)
            raise ValueError(f"Unknown join target: {target}")
        return build()

    async def _run(self, target: str, query: JoinQuery) -> RowSet:
        try:
            async with self.db.with_session() as session:
                result = await session.execute(query.statement)
                rows = [tuple("" if value is None else value for value in row) for row in result.all()]
        except SQLAlchemyError as exc:
            logger.error("SQL error in JOIN query for {}: {}", target, exc)
            raise
        return RowSet(headers=list(query.headers), rows=rows)

    async def fetch(self, target: str) -> RowSet:
        return await self._run(target, self._query(target))

    async def join(self, target: str) -> int:
        logger.info("Executing JOIN query for table: {}", target)
        query = self._query(target)
        row_set = await self._run(target, query)
        self.renderer.render(query.title, row_set.headers, row_set.rows)
        logger.info("Displayed {} rows for {} JOIN", len(row_set), target)
        return len(row_set)
