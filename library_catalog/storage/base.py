from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def import_all_models() -> None:
    from library_catalog.storage.authors.base import AuthorRecord
    from library_catalog.storage.books.base import BookRecord
    from library_catalog.storage.genres.base import GenreRecord
    from library_catalog.storage.publishers.base import PublisherRecord

    _ = (
        AuthorRecord,
        BookRecord,
        GenreRecord,
        PublisherRecord,
    )
