from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, ConfigDict, field_validator


LOG_LEVELS: tuple[str, ...] = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _normalize_level(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {value}")
    return normalized


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: Path = Field(default=Path("./data"))
    export_dir: Path = Field(default=Path("./export"))
    log_level: str = Field(default="INFO")
    log_file: Path | None = Field(default=Path("./library.log"))
    log_file_level: str = Field(default="DEBUG")

    @field_validator("log_level", "log_file_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        return _normalize_level(value)


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sqlite_path: Path = Field(default=Path("./data/library.db"))

    @field_validator("sqlite_path")
    @classmethod
    def _not_a_directory_name(cls, value: Path) -> Path:
        if not value.name:
            raise ValueError("storage.sqlite_path must name a file")
        return value


class AppConfigRoot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = AppConfig()
    storage: StorageConfig = StorageConfig()


def resolve_paths(config: AppConfigRoot, base_dir: Path) -> AppConfigRoot:
    def _resolve(path_value: Path) -> Path:
        return path_value if path_value.is_absolute() else (base_dir / path_value).resolve()

    config.app.data_dir = _resolve(config.app.data_dir)
    config.app.export_dir = _resolve(config.app.export_dir)
    if config.app.log_file is not None:
        config.app.log_file = _resolve(config.app.log_file)
    config.storage.sqlite_path = _resolve(config.storage.sqlite_path)
    return config
