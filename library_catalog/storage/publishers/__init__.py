"""Publisher table."""

from library_catalog.storage.publishers.base import PublisherRecord

__all__ = ["PublisherRecord"]
