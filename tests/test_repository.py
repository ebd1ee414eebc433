from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Sequence

from loguru import logger
import pytest

from library_catalog.domain.models import Author, Book, Genre
from library_catalog.storage.db import DatabaseService, build_sqlite_url
from library_catalog.storage.descriptors import AUTHOR, BOOK, GENRE, EntityDescriptor
from library_catalog.storage.repo import EntityRepository
from library_catalog.storage.types import OpStatus


class _RecordingRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], list[tuple[Any, ...]]]] = []

    def render(self, title: str, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.calls.append((title, list(headers), [tuple(row) for row in rows]))


async def _open(tmp_path: Path, descriptor=GENRE) -> tuple[DatabaseService, EntityRepository, _RecordingRenderer]:
    db = DatabaseService(build_sqlite_url(tmp_path / "catalog.db"))
    renderer = _RecordingRenderer()
    repo = EntityRepository(db, descriptor, renderer, tmp_path / "export")
    assert await repo.initialize() is True
    return db, repo, renderer


def _book(title: str = "War and Peace", year: int = 1869, pages: int = 1225) -> Book:
    return Book(title=title, author_id=1, genre_id=1, publisher_id=1, year=year, pages=pages)


def test_save_assigns_ids_and_rejects_duplicates(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path)
        try:
            first = Genre(title="Novel", description="Long prose")
            result = await repo.save(first)
            assert result.status is OpStatus.OK
            assert result.id == 1
            assert first.id == 1

            second = Genre(title="Poetry")
            assert (await repo.save(second)).id == 2

            duplicate = Genre(title="Novel", description="different description")
            result = await repo.save(duplicate)
            assert result.status is OpStatus.DUPLICATE
            assert duplicate.is_saved is False
            assert await repo.exists(duplicate) is True
            assert len(await repo.rows()) == 2
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_initialize_is_idempotent_and_keeps_rows(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path)
        try:
            await repo.save(Genre(title="Novel"))
            assert await repo.initialize() is True
            assert len(await repo.rows()) == 1
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_book_natural_key_ignores_description(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path, BOOK)
        try:
            assert (await repo.save(_book())).ok
            copy = _book()
            copy.description = "another edition blurb"
            assert (await repo.save(copy)).status is OpStatus.DUPLICATE
            assert (await repo.save(_book(pages=900))).ok
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_show_all_renders_rows_in_id_order(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, renderer = await _open(tmp_path)
        try:
            for title in ("Novel", "Poetry", "Drama"):
                await repo.save(Genre(title=title))

            result = await repo.show_all()

            assert result.count == 3
            title, headers, rows = renderer.calls[-1]
            assert title == "Genres"
            assert headers == ["id", "title", "description"]
            assert [row[1] for row in rows] == ["Novel", "Poetry", "Drama"]
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_update_changes_one_field(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path, BOOK)
        try:
            await repo.save(_book())

            result = await repo.update("pages", 1, "1300")
            assert result.status is OpStatus.OK

            rows = (await repo.rows()).as_dicts()
            assert rows[0]["pages"] == 1300
            assert rows[0]["title"] == "War and Peace"
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_update_reports_unknown_field_bad_value_and_missing_id(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path, BOOK)
        try:
            await repo.save(_book())

            assert (await repo.update("id", 1, "5")).status is OpStatus.INVALID_FIELD
            assert (await repo.update("title; DROP TABLE book", 1, "x")).status is OpStatus.INVALID_FIELD
            assert (await repo.update("year", 1, "nineteen")).status is OpStatus.INVALID_VALUE
            assert (await repo.update("title", 42, "Anna Karenina")).status is OpStatus.NOT_FOUND
            assert (await repo.rows()).as_dicts()[0]["title"] == "War and Peace"
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_delete_removes_every_match(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path, BOOK)
        try:
            await repo.save(_book("A", year=1900))
            await repo.save(_book("B", year=1900))
            await repo.save(_book("C", year=1950))

            result = await repo.delete("year", "1900")
            assert result.status is OpStatus.OK
            assert result.count == 2
            assert [row["title"] for row in (await repo.rows()).as_dicts()] == ["C"]

            assert (await repo.delete("year", "1900")).status is OpStatus.NOT_FOUND
            assert (await repo.delete("colour", "red")).status is OpStatus.INVALID_FIELD
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_filter_orders_by_field(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, renderer = await _open(tmp_path, BOOK)
        try:
            await repo.save(_book("B", year=1950))
            await repo.save(_book("A", year=1900))
            await repo.save(_book("C", year=2000))

            assert (await repo.filter("year", "up")).count == 3
            assert [row[1] for row in renderer.calls[-1][2]] == ["A", "B", "C"]

            await repo.filter("title", "down")
            assert [row[1] for row in renderer.calls[-1][2]] == ["C", "B", "A"]
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_filter_with_invalid_direction_renders_nothing(tmp_path: Path) -> None:
    messages: list[str] = []

    async def _run() -> None:
        db, repo, renderer = await _open(tmp_path, BOOK)
        try:
            await repo.save(_book())

            result = await repo.filter("year", "sideways")

            assert result.status is OpStatus.INVALID_DIRECTION
            assert renderer.calls == []
        finally:
            await db.dispose()

    sink_id = logger.add(lambda message: messages.append(str(message)), level="ERROR")
    try:
        asyncio.run(_run())
    finally:
        logger.remove(sink_id)

    assert any("Invalid sort direction" in message for message in messages)


def test_find_matches_exact_value(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, renderer = await _open(tmp_path, AUTHOR)
        try:
            await repo.save(Author(full_name="Leo Tolstoy"))
            await repo.save(Author(full_name="Anton Chekhov"))

            result = await repo.find("full_name", "Anton Chekhov")
            assert result.count == 1
            assert renderer.calls[-1][2][0][1] == "Anton Chekhov"

            assert (await repo.find("id", "1")).count == 1
            assert (await repo.find("full_name", "Chekhov")).count == 0
            assert (await repo.find("nickname", "x")).status is OpStatus.INVALID_FIELD
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_export_json_and_csv(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path)
        try:
            await repo.save(Genre(title="Novel", description="Long, fictional prose"))

            result = await repo.export_data("json")
            assert result.ok
            assert result.path == tmp_path / "export" / "genre_export.json"
            assert json.loads(result.path.read_text(encoding="utf-8")) == [
                {"id": 1, "title": "Novel", "description": "Long, fictional prose"}
            ]

            result = await repo.export_data("csv")
            assert result.count == 1
            raw = result.path.read_bytes()
            assert raw.startswith(b"\xef\xbb\xbf")
            assert raw.decode("utf-8-sig") == 'id,title,description\n1,Novel,"Long, fictional prose"\n'

            assert (await repo.export_data("xml")).status is OpStatus.INVALID_FORMAT
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_export_of_empty_table_writes_empty_array(tmp_path: Path) -> None:
    async def _run() -> None:
        db, repo, _ = await _open(tmp_path)
        try:
            result = await repo.export_data("json")
            assert result.count == 0
            assert result.path.read_text(encoding="utf-8") == "[]"
        finally:
            await db.dispose()

    asyncio.run(_run())


def test_descriptor_rejects_field_lists_naming_unknown_columns() -> None:
    with pytest.raises(ValueError, match="shelf"):
        EntityDescriptor(
            code="9",
            name="genre",
            plural="genres",
            record=GENRE.record,
            model=GENRE.model,
            natural_key=("title",),
            editable=("title", "description"),
            searchable=("title", "shelf"),
            import_fields=GENRE.import_fields,
        )
