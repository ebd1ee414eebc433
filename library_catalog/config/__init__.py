"""Configuration loading and schema."""

from library_catalog.config.loader import load_config
from library_catalog.config.schema import AppConfig, AppConfigRoot, StorageConfig

__all__ = ["AppConfig", "AppConfigRoot", "StorageConfig", "load_config"]
