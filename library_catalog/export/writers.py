from __future__ import annotations

from pathlib import Path
from typing import Any
import json

from library_catalog.storage.types import RowSet


EXPORT_FORMATS: tuple[str, ...] = ("csv", "json")


class UnsupportedExportFormat(ValueError):
    pass


def _csv_cell(value: Any) -> str:
    text = "" if value is None else str(value)
    # Only commas are quoted; embedded quotes and newlines are written as-is.
    if "," in text:
        return f'"{text}"'
    return text


def render_csv(row_set: RowSet) -> str:
    lines = [",".join(row_set.headers)]
    for row in row_set.rows:
        lines.append(",".join(_csv_cell(value) for value in row))
    return "\n".join(lines) + "\n"


def render_json(row_set: RowSet) -> str:
    # orjson only indents by two spaces; the export contract is four.
    return json.dumps(row_set.as_dicts(), indent=4, ensure_ascii=False)


def export_path(export_dir: Path, table_name: str, fmt: str) -> Path:
    return export_dir / f"{table_name}_export.{fmt}"


def write_export(row_set: RowSet, fmt: str, export_dir: Path, table_name: str) -> Path:
    if fmt not in EXPORT_FORMATS:
        raise UnsupportedExportFormat(f"Invalid export format: {fmt}")

    target = export_path(export_dir, table_name, fmt)
    target.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        target.write_text(render_csv(row_set), encoding="utf-8-sig", newline="")
    else:
        target.write_text(render_json(row_set), encoding="utf-8")
    return target
