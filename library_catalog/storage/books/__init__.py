"""Book table."""

from library_catalog.storage.books.base import BookRecord

__all__ = ["BookRecord"]
