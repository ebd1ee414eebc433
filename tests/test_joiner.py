from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Sequence

import pytest

from library_catalog.domain.models import Author, Book, Genre, Publisher
from library_catalog.storage.db import DatabaseService, build_sqlite_url
from library_catalog.storage.descriptors import AUTHOR, BOOK, GENRE, PUBLISHER
from library_catalog.storage.joiner import Joiner
from library_catalog.storage.repo import EntityRepository


class _RecordingRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], list[tuple[Any, ...]]]] = []

    def render(self, title: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.calls.append((title, list(headers), [tuple(row) for row in rows]))


async def _seed(tmp_path: Path, renderer: _RecordingRenderer) -> DatabaseService:
    db = DatabaseService(build_sqlite_url(tmp_path / "catalog.db"))
    repos = {
        descriptor.name: EntityRepository(db, descriptor, renderer, tmp_path / "export")
        for descriptor in (AUTHOR, GENRE, PUBLISHER, BOOK)
    }
    for repo in repos.values():
        await repo.initialize()

    await repos["author"].save(Author(full_name="Leo Tolstoy", date_of_birth="09.09.1828"))
    await repos["genre"].save(Genre(title="Novel", description="Long prose"))
    await repos["publisher"].save(Publisher(name="Penguin", address="London", phone="1", mail="a@b.com"))
    await repos["book"].save(Book(title="War and Peace", author_id=1, genre_id=1, publisher_id=1, year=1869, pages=1225))
    # Dangling author reference: foreign keys are declared but not enforced.
    await repos["book"].save(Book(title="Orphan", author_id=99, genre_id=1, publisher_id=1, year=1900, pages=10))
    return db


def test_author_join_projects_book_and_author_columns(tmp_path: Path) -> None:
    renderer = _RecordingRenderer()

    async def _run() -> None:
        db = await _seed(tmp_path, renderer)
        try:
            joiner = Joiner(db, renderer)
            assert await joiner.join("author") == 1

            _, headers, rows = renderer.calls[-1]
            assert headers == ["title", "year", "genre", "pages", "publisher", "author", "date_of_birth", "date_of_death"]
            # The empty date of death is stored as an empty string.
            assert rows == [("War and Peace", 1869, 1, 1225, 1, "Leo Tolstoy", "09.09.1828", "")]
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_publisher_and_genre_joins(tmp_path: Path) -> None:
    renderer = _RecordingRenderer()

    async def _run() -> None:
        db = await _seed(tmp_path, renderer)
        try:
            joiner = Joiner(db, renderer)

            publishers = await joiner.fetch("publisher")
            assert publishers.headers == ["title", "author", "year", "genre", "pages", "publisher", "address", "phone", "mail"]
            assert [row[0] for row in publishers.rows] == ["War and Peace", "Orphan"]
            assert publishers.rows[1][1] == 99

            genres = await joiner.fetch("genre")
            assert genres.as_dicts()[0]["genre"] == "Novel"
            assert genres.as_dicts()[0]["description"] == "Long prose"
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_unknown_join_target_raises(tmp_path: Path) -> None:
    renderer = _RecordingRenderer()

    async def _run() -> None:
        db = await _seed(tmp_path, renderer)
        try:
            with pytest.raises(ValueError):
                await Joiner(db, renderer).join("shelf")
        finally:
            await db.dispose()

    asyncio.run(_run())
