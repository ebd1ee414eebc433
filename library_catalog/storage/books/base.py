from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from library_catalog.storage.base import Base


class BookRecord(Base):
    __tablename__ = "book"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    # Declared only; SQLite leaves foreign keys unenforced unless the pragma is on.
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("author.id"), nullable=False)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    genre_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("genre.id"), nullable=True)
    pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    publisher_id: Mapped[int] = mapped_column(Integer, ForeignKey("publisher.id"), nullable=False)
