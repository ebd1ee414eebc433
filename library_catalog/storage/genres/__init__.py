"""Genre table."""

from library_catalog.storage.genres.base import GenreRecord

__all__ = ["GenreRecord"]
