from __future__ import annotations

from typing import Any, Iterable, Mapping

from loguru import logger

from library_catalog.domain.models import CatalogEntity
from library_catalog.storage.descriptors import EntityDescriptor
from library_catalog.storage.repo import EntityRepository


class ImportHeaderError(ValueError):
    """The input lacks a column or key every record of the entity needs."""


def normalize_key(name: str) -> str:
    return name.strip().lower()


def resolve_keys(descriptor: EntityDescriptor, available: Iterable[str]) -> dict[str, str]:
    """Map each model attribute to the input key supplying it.

    Keys are compared case-insensitively; the first accepted alias present
    wins. Raises :class:`ImportHeaderError` naming every missing field.
    """
    present = {normalize_key(name) for name in available}
    mapping: dict[str, str] = {}
    missing: list[str] = []
    for field in descriptor.import_fields:
        key = next((alias for alias in field.keys if alias in present), None)
        if key is None:
            missing.append(field.display_name)
        else:
            mapping[field.attr] = key
    if missing:
        raise ImportHeaderError(f"Missing required fields: {', '.join(missing)}")
    return mapping


def build_values(mapping: Mapping[str, str], row: Mapping[str, Any]) -> dict[str, str]:
    values: dict[str, str] = {}
    for attr, key in mapping.items():
        raw = row.get(key)
        values[attr] = "" if raw is None else str(raw).strip()
    return values


async def persist(repo: EntityRepository, entity: CatalogEntity, where: str) -> bool:
    result = await repo.save(entity)
    if not result:
        logger.bind(entity=repo.descriptor.name).warning(
            "Skipped {} ({}): {}", where, result.status.value, result.message or "not saved"
        )
        return False
    return True
