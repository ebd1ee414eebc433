"""Author table."""

from library_catalog.storage.authors.base import AuthorRecord

__all__ = ["AuthorRecord"]
