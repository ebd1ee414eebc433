from __future__ import annotations

from pathlib import Path

from loguru import logger

from library_catalog.domain.models import CatalogEntity
from library_catalog.ingest.fields import ImportHeaderError, build_values, normalize_key, persist, resolve_keys
from library_catalog.storage.repo import EntityRepository


def split_csv_line(line: str) -> list[str]:
    """Split on commas outside double quotes and trim each field.

    Quote characters only toggle quoting and are dropped; there is no
    escaped-quote syntax.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    fields.append("".join(current).strip())
    return fields


def load_lines(path: Path) -> list[str]:
    # utf-8-sig drops a leading byte-order mark when there is one.
    return path.read_text(encoding="utf-8-sig").splitlines()


async def read_csv(path: Path, repo: EntityRepository) -> list[CatalogEntity]:
    descriptor = repo.descriptor
    log = logger.bind(entity=descriptor.name)
    log.info("Loading CSV from file: {}", path)

    imported: list[CatalogEntity] = []
    try:
        lines = load_lines(path)
        if not lines:
            log.error("Empty CSV file: {}", path)
            return imported

        headers = [normalize_key(name) for name in split_csv_line(lines[0])]
        mapping = resolve_keys(descriptor, headers)
        log.debug("CSV headers: {}", headers)

        for line_no, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue
            fields = split_csv_line(line)
            if len(fields) < len(headers):
                log.warning("Invalid row {}, too few fields: {}", line_no, line)
                continue

            row = dict(zip(headers, fields))
            try:
                entity = descriptor.build(build_values(mapping, row))
            except ValueError as exc:
                log.warning("Error parsing row {}: {}", line_no, exc)
                continue

            if await persist(repo, entity, f"row {line_no}"):
                imported.append(entity)
    except ImportHeaderError as exc:
        log.error("CSV {} does not contain required headers. {}", path, exc)
        return []
    except (OSError, UnicodeDecodeError) as exc:
        log.error("Error reading CSV {}: {}", path, exc)
        return imported

    log.info("Loaded {} {} from CSV", len(imported), descriptor.plural)
    return imported
