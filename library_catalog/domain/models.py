from __future__ import annotations

from datetime import date, datetime
import re

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


UNSAVED_ID = -1
DATE_FORMAT = "%d.%m.%Y"
_MAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def _require_text(value: str, message: str) -> str:
    if not value or not value.strip():
        raise ValueError(message)
    return value


def parse_catalog_date(value: str) -> date | None:
    """Parse a ``dd.mm.yyyy`` date; an empty value means unknown."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise ValueError(f"Invalid date format: {value}") from exc


class CatalogEntity(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = UNSAVED_ID

    @property
    def is_saved(self) -> bool:
        return self.id != UNSAVED_ID


class Author(CatalogEntity):
    full_name: str
    date_of_birth: str = ""
    date_of_death: str = ""
    biography: str = ""

    @field_validator("full_name")
    @classmethod
    def _name_present(cls, value: str) -> str:
        return _require_text(value, "Author's name cannot be empty")

    @model_validator(mode="after")
    def _validate_dates(self) -> "Author":
        today = date.today()
        born = parse_catalog_date(self.date_of_birth)
        died = parse_catalog_date(self.date_of_death)
        if born is not None and born > today:
            raise ValueError("Date of birth cannot be in the future")
        if died is not None and died > today:
            raise ValueError("Date of death cannot be in the future")
        if born is not None and died is not None and born > died:
            raise ValueError("Date of death cannot be earlier than date of birth")
        return self


class Book(CatalogEntity):
    title: str
    author_id: int
    genre_id: int
    publisher_id: int
    year: int
    pages: int
    description: str = ""

    @field_validator("title")
    @classmethod
    def _title_present(cls, value: str) -> str:
        return _require_text(value, "Book title must not be empty")

    @field_validator("year")
    @classmethod
    def _year_not_in_future(cls, value: int) -> int:
        if value > date.today().year:
            raise ValueError("The year of publication cannot be in the future")
        return value


class Genre(CatalogEntity):
    title: str
    description: str = ""

    @field_validator("title")
    @classmethod
    def _title_present(cls, value: str) -> str:
        return _require_text(value, "Genre name must not be empty")


class Publisher(CatalogEntity):
    name: str
    address: str = ""
    phone: str = ""
    mail: str

    @field_validator("name")
    @classmethod
    def _name_present(cls, value: str) -> str:
        return _require_text(value, "Publisher name must not be empty")

    @field_validator("mail")
    @classmethod
    def _mail_shape(cls, value: str) -> str:
        if not _MAIL_PATTERN.fullmatch(value):
            raise ValueError("Incorrect mail")
        return value
