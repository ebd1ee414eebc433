from __future__ import annotations

from pathlib import Path
from typing import Any
import os

import yaml
from loguru import logger

from library_catalog.config.schema import AppConfigRoot, resolve_paths


ENV_DATA_DIR = "LIBRARY_CATALOG_DATA_DIR"
ENV_DB_PATH = "LIBRARY_CATALOG_DB_PATH"
ENV_LOG_LEVEL = "LIBRARY_CATALOG_LOG_LEVEL"

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    ENV_DATA_DIR: ("app", "data_dir"),
    ENV_LOG_LEVEL: ("app", "log_level"),
    ENV_DB_PATH: ("storage", "sqlite_path"),
}


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_dotenv(dotenv_path: Path) -> None:
    if not dotenv_path.exists():
        return
    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("\"")
        os.environ.setdefault(key, value)


def _apply_env(config_data: dict[str, Any]) -> dict[str, Any]:
    for name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(name)
        if value:
            config_data.setdefault(section, {})[key] = value
    return config_data


def load_config(
    config_path: Path | None = None,
    profile: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfigRoot:
    base_dir = Path.cwd()
    _load_dotenv(base_dir / ".env")

    config_data: dict[str, Any] = {}
    config_data = _deep_merge(config_data, _read_yaml(base_dir / "configs" / "default.yaml"))

    if profile:
        profile_path = base_dir / "configs" / "profiles" / f"{profile}.yaml"
        config_data = _deep_merge(config_data, _read_yaml(profile_path))

    if config_path:
        config_data = _deep_merge(config_data, _read_yaml(config_path))

    if overrides:
        config_data = _deep_merge(config_data, overrides)

    config_data = _apply_env(config_data)

    config = AppConfigRoot.model_validate(config_data)
    config = resolve_paths(config, base_dir)

    logger.debug("Loaded config from {}", base_dir)
    return config


def env_snapshot() -> dict[str, str | None]:
    return {name: os.getenv(name) for name in (ENV_DATA_DIR, ENV_DB_PATH, ENV_LOG_LEVEL)}
