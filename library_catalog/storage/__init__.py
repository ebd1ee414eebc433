"""Storage layer for SQLite via SQLAlchemy async."""

from library_catalog.storage import authors, books, genres, publishers

__all__ = ["authors", "books", "genres", "publishers"]
