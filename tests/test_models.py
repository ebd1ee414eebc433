from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from library_catalog.domain.models import UNSAVED_ID, Author, Book, Genre, Publisher, parse_catalog_date


def _next_year() -> int:
    return date.today().year + 1


def test_parse_catalog_date_accepts_dotted_format_and_empty() -> None:
    assert parse_catalog_date("01.02.1900") == date(1900, 2, 1)
    assert parse_catalog_date("") is None

    with pytest.raises(ValueError):
        parse_catalog_date("1900-02-01")


def test_author_requires_name_and_checks_dates() -> None:
    author = Author(full_name="Leo Tolstoy", date_of_birth="09.09.1828", date_of_death="20.11.1910")
    assert author.id == UNSAVED_ID
    assert author.is_saved is False

    with pytest.raises(ValidationError):
        Author(full_name="   ")

    with pytest.raises(ValidationError, match="earlier than date of birth"):
        Author(full_name="X", date_of_birth="02.01.1900", date_of_death="01.01.1900")

    with pytest.raises(ValidationError, match="in the future"):
        Author(full_name="X", date_of_birth=f"01.01.{_next_year()}")

    with pytest.raises(ValidationError, match="Invalid date format"):
        Author(full_name="X", date_of_birth="1900/01/01")


def test_author_allows_unknown_dates() -> None:
    author = Author(full_name="Anonymous")

    assert author.date_of_birth == ""
    assert author.date_of_death == ""


def test_book_coerces_numbers_and_rejects_future_year() -> None:
    book = Book.model_validate(
        {"title": "War and Peace", "author_id": "1", "genre_id": "2", "publisher_id": "3", "year": "1869", "pages": "1225"}
    )
    assert book.author_id == 1
    assert book.year == 1869
    assert book.description == ""

    with pytest.raises(ValidationError):
        Book(title="T", author_id=1, genre_id=1, publisher_id=1, year=_next_year(), pages=10)

    with pytest.raises(ValidationError):
        Book.model_validate({"title": "T", "author_id": "x", "genre_id": 1, "publisher_id": 1, "year": 2000, "pages": 1})

    with pytest.raises(ValidationError):
        Book(title="", author_id=1, genre_id=1, publisher_id=1, year=2000, pages=10)


def test_publisher_mail_must_look_like_an_address() -> None:
    publisher = Publisher(name="Penguin", mail="info@penguin.com")
    assert publisher.address == ""

    with pytest.raises(ValidationError, match="Incorrect mail"):
        Publisher(name="Penguin", mail="penguin.com")

    with pytest.raises(ValidationError):
        Publisher(name="Penguin", mail="a b@c.d")

    with pytest.raises(ValidationError):
        Publisher(name="Penguin", mail="info@penguin.com\n")


def test_genre_requires_title_and_forbids_unknown_fields() -> None:
    assert Genre(title="Novel").description == ""

    with pytest.raises(ValidationError):
        Genre(title="")

    with pytest.raises(ValidationError):
        Genre.model_validate({"title": "Novel", "colour": "red"})
