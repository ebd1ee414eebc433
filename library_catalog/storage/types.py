from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class OpStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    STORAGE_ERROR = "storage_error"
    IO_ERROR = "io_error"
    INVALID_FIELD = "invalid_field"
    INVALID_VALUE = "invalid_value"
    INVALID_DIRECTION = "invalid_direction"
    INVALID_FORMAT = "invalid_format"
    INVALID_ENTITY = "invalid_entity"
    VALIDATION_ERROR = "validation_error"


@dataclass
class OpResult:
    status: OpStatus
    id: int = -1
    count: int = 0
    path: Path | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is OpStatus.OK

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class RowSet:
    headers: list[str]
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    def as_dicts(self) -> list[dict[str, Any]]:
        return [dict(zip(self.headers, row)) for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)
