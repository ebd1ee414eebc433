"""Per-entity descriptors driving the generic repository, readers and menus.

A descriptor is the only place that knows which columns an entity has, which
of them form its natural key, and which names a caller may pass as a field.
Every field list is checked against the table when the descriptor is built.
Repositories resolve caller-supplied field names through :meth:`column`, so a
name that is not a real column never reaches a query.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import Column, Table

from library_catalog.domain.models import Author, Book, CatalogEntity, Genre, Publisher
from library_catalog.storage.authors.base import AuthorRecord
from library_catalog.storage.base import Base
from library_catalog.storage.books.base import BookRecord
from library_catalog.storage.genres.base import GenreRecord
from library_catalog.storage.publishers.base import PublisherRecord


@dataclass(frozen=True)
class ImportField:
    attr: str
    keys: tuple[str, ...]

    @property
    def display_name(self) -> str:
        return self.keys[0].title()


@dataclass(frozen=True)
class EntityDescriptor:
    code: str
    name: str
    plural: str
    record: type[Base]
    model: type[CatalogEntity]
    natural_key: tuple[str, ...]
    editable: tuple[str, ...]
    searchable: tuple[str, ...]
    import_fields: tuple[ImportField, ...]

    def __post_init__(self) -> None:
        names = (*self.natural_key, *self.editable, *self.searchable, *(field.attr for field in self.import_fields))
        unknown = sorted({name for name in names if name not in self.columns})
        if unknown:
            raise ValueError(f"{self.name} descriptor names unknown columns: {', '.join(unknown)}")

    @property
    def table(self) -> Table:
        return self.record.__table__  # type: ignore[return-value]

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.table.columns)

    def column(self, field: str) -> Column | None:
        if field not in self.columns:
            return None
        return self.table.columns[field]

    def coerce(self, field: str, value: Any) -> Any:
        """Convert a raw (usually string) value to the column's Python type."""
        column = self.table.columns[field]
        if column.type.python_type is int and not isinstance(value, int):
            return int(str(value).strip())
        return value

    def build(self, values: Mapping[str, Any]) -> CatalogEntity:
        return self.model.model_validate(dict(values))

    def values_of(self, entity: CatalogEntity) -> dict[str, Any]:
        return {name: getattr(entity, name) for name in self.columns if name != "id"}


BOOK = EntityDescriptor(
    code="1",
    name="book",
    plural="books",
    record=BookRecord,
    model=Book,
    natural_key=("title", "author_id", "year", "genre_id", "pages", "publisher_id"),
    editable=("title", "author_id", "year", "genre_id", "pages", "publisher_id", "description"),
    searchable=("title", "author_id", "year", "genre_id", "pages", "publisher_id"),
    import_fields=(
        ImportField("title", ("title",)),
        ImportField("author_id", ("author", "author_id")),
        ImportField("genre_id", ("genre", "genre_id")),
        ImportField("year", ("year",)),
        ImportField("pages", ("pages",)),
        ImportField("description", ("description",)),
        ImportField("publisher_id", ("publisher", "publisher_id")),
    ),
)

AUTHOR = EntityDescriptor(
    code="2",
    name="author",
    plural="authors",
    record=AuthorRecord,
    model=Author,
    natural_key=("full_name",),
    editable=("full_name", "date_of_birth", "date_of_death", "biography"),
    searchable=("full_name", "date_of_birth", "date_of_death", "biography"),
    import_fields=(
        ImportField("full_name", ("name", "full_name")),
        ImportField("date_of_birth", ("date_of_birth",)),
        ImportField("date_of_death", ("date_of_death",)),
        ImportField("biography", ("biography",)),
    ),
)

PUBLISHER = EntityDescriptor(
    code="3",
    name="publisher",
    plural="publishers",
    record=PublisherRecord,
    model=Publisher,
    natural_key=("name",),
    editable=("name", "address", "phone", "mail"),
    searchable=("name", "address", "phone", "mail"),
    import_fields=(
        ImportField("name", ("name",)),
        ImportField("address", ("address",)),
        ImportField("phone", ("phone",)),
        ImportField("mail", ("mail",)),
    ),
)

GENRE = EntityDescriptor(
    code="4",
    name="genre",
    plural="genres",
    record=GenreRecord,
    model=Genre,
    natural_key=("title",),
    editable=("title", "description"),
    searchable=("title", "description"),
    import_fields=(
        ImportField("title", ("name", "title")),
        ImportField("description", ("description",)),
    ),
)

DESCRIPTORS: dict[str, EntityDescriptor] = {
    descriptor.code: descriptor for descriptor in (BOOK, AUTHOR, PUBLISHER, GENRE)
}
