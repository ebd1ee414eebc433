from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson
from loguru import logger

from library_catalog.domain.models import CatalogEntity
from library_catalog.ingest.fields import ImportHeaderError, build_values, normalize_key, persist, resolve_keys
from library_catalog.storage.repo import EntityRepository


def load_records(path: Path) -> list[dict[str, Any]]:
    """Parse the file into a list of objects with lower-cased keys.

    Raises ``ValueError`` when the top-level value is not an array of objects.
    """
    payload = orjson.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(payload, list):
        raise ValueError("JSON is not an array")
    records: list[dict[str, Any]] = []
    for index, item in enumerate(payload, start=1):
        if not isinstance(item, dict):
            raise ValueError(f"JSON item {index} is not an object")
        records.append({normalize_key(str(key)): value for key, value in item.items()})
    return records


async def read_json(path: Path, repo: EntityRepository) -> list[CatalogEntity]:
    descriptor = repo.descriptor
    log = logger.bind(entity=descriptor.name)
    log.info("Loading JSON from file: {}", path)

    try:
        records = load_records(path)
        # Every object is checked before anything is saved, so a bad object aborts cleanly.
        mappings = []
        for index, record in enumerate(records, start=1):
            try:
                mappings.append(resolve_keys(descriptor, record.keys()))
            except ImportHeaderError as exc:
                raise ImportHeaderError(f"row {index}: {exc}") from exc
    except ImportHeaderError as exc:
        log.error("JSON {} does not contain required keys. {}", path, exc)
        return []
    except (OSError, ValueError) as exc:
        log.error("Error reading JSON {}: {}", path, exc)
        return []

    imported: list[CatalogEntity] = []
    for index, (record, mapping) in enumerate(zip(records, mappings), start=1):
        try:
            entity = descriptor.build(build_values(mapping, record))
        except ValueError as exc:
            log.warning("Error parsing row {}: {}", index, exc)
            continue
        if await persist(repo, entity, f"row {index}"):
            imported.append(entity)

    log.info("Loaded {} {} from JSON", len(imported), descriptor.plural)
    return imported
