from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping

from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError

from library_catalog.domain.models import CatalogEntity
from library_catalog.ingest.csv_reader import read_csv
from library_catalog.ingest.json_reader import read_json
from library_catalog.render.table import Renderer
from library_catalog.storage.db import DatabaseService
from library_catalog.storage.descriptors import AUTHOR, BOOK, DESCRIPTORS, GENRE, PUBLISHER
from library_catalog.storage.joiner import Joiner
from library_catalog.storage.repo import EntityRepository
from library_catalog.storage.types import OpResult, OpStatus


ENTITY_CODES: dict[str, str] = {code: descriptor.name for code, descriptor in DESCRIPTORS.items()}
JOIN_CODES: dict[str, str] = {"1": "author", "2": "publisher", "3": "genre"}

# Referenced tables first so the declared book foreign keys point at existing tables.
_INIT_ORDER = (AUTHOR.code, GENRE.code, PUBLISHER.code, BOOK.code)

Reader = Callable[[Path, EntityRepository], Awaitable[list[CatalogEntity]]]
READERS: dict[str, Reader] = {
    ".csv": read_csv,
    ".json": read_json,
}


class LibraryInitError(RuntimeError):
    pass


def describe_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(str(error["msg"]).removeprefix("Value error, ") for error in exc.errors())
    return str(exc)


class Library:
    """Single entry point dispatching by entity code to the matching repository.

    Every operation reports problems on the console and in the log and returns
    a result; nothing here raises except :meth:`initialize`.
    """

    def __init__(
        self,
        db: DatabaseService,
        renderer: Renderer,
        export_dir: Path,
        import_dir: Path,
        console: Console | None = None,
    ):
        self.console = console or Console()
        self.import_dir = import_dir
        self.repositories: dict[str, EntityRepository] = {
            code: EntityRepository(db, descriptor, renderer, export_dir) for code, descriptor in DESCRIPTORS.items()
        }
        self.joiner = Joiner(db, renderer)

    async def initialize(self) -> None:
        failed = []
        for code in _INIT_ORDER:
            repo = self.repositories[code]
            if not await repo.initialize():
                failed.append(repo.descriptor.name)
        if failed:
            logger.error("Failed to initialize repositories: {}", ", ".join(failed))
            raise LibraryInitError(f"Repository initialization failed: {', '.join(failed)}")
        logger.info("Library initialized with import dir: {}", self.import_dir)

    def _repo(self, code: str) -> EntityRepository | None:
        repo = self.repositories.get(code)
        if repo is None:
            logger.warning("Invalid entity choice: {!r}", code)
            self.console.print("[red]Invalid entity choice[/]")
        return repo

    def _report_failure(self, action: str, result: OpResult) -> None:
        if result.ok:
            return
        detail = f": {result.message}" if result.message else ""
        self.console.print(f"[red]{action} failed ({result.status.value}){detail}[/]")

    def resolve_import_path(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser()
        return candidate if candidate.is_absolute() else self.import_dir / candidate

    async def load(self, path: str | Path, code: str) -> list[CatalogEntity]:
        repo = self._repo(code)
        if repo is None:
            return []

        full_path = self.resolve_import_path(path)
        logger.info("Loading file: {}", full_path)
        if not full_path.is_file():
            logger.error("File not found: {}", full_path)
            self.console.print(f"[red]File '{full_path}' not found[/]")
            return []

        reader = READERS.get(full_path.suffix.lower())
        if reader is None:
            logger.error("Unsupported file format: {}", full_path)
            self.console.print("[red]Unsupported file format[/]")
            return []

        try:
            data = await reader(full_path, repo)
        except (SQLAlchemyError, OSError, ValueError) as exc:
            logger.exception("Error loading file {}", full_path)
            self.console.print(f"[red]Error loading file: {exc}[/]")
            return []

        logger.info("Imported {} {} from {}", len(data), repo.descriptor.plural, full_path)
        self.console.print(f"Imported {len(data)} records.")
        return data

    async def add_record(self, code: str, record: Mapping[str, Any]) -> OpResult:
        repo = self._repo(code)
        if repo is None:
            return OpResult(OpStatus.INVALID_ENTITY)

        try:
            entity = repo.descriptor.build(record)
        except ValueError as exc:
            message = describe_error(exc)
            logger.error("Invalid {} record: {}", repo.descriptor.name, message)
            self.console.print(f"[red]Invalid {repo.descriptor.name}: {message}[/]")
            return OpResult(OpStatus.VALIDATION_ERROR, message=message)

        result = await repo.save(entity)
        self._report_failure(f"Adding {repo.descriptor.name}", result)
        return result

    async def update_record(self, code: str, field: str, new_value: Any, record_id: int) -> OpResult:
        logger.info("Updating choice: {}, field: {}, new value: {!r}, id: {}", code, field, new_value, record_id)
        repo = self._repo(code)
        if repo is None:
            return OpResult(OpStatus.INVALID_ENTITY)
        result = await repo.update(field, record_id, new_value)
        if result.status is not OpStatus.NOT_FOUND:
            self._report_failure("Update", result)
        return result

    async def delete_record(self, code: str, field: str, value: Any) -> OpResult:
        logger.info("Deleting choice: {}, field: {}, value: {!r}", code, field, value)
        repo = self._repo(code)
        if repo is None:
            return OpResult(OpStatus.INVALID_ENTITY)
        result = await repo.delete(field, value)
        if result.status is not OpStatus.NOT_FOUND:
            self._report_failure("Delete", result)
        return result

    async def search(self, code: str, field: str, value: Any) -> int:
        logger.info("Searching choice: {}, field: {}, value: {!r}", code, field, value)
        repo = self._repo(code)
        if repo is None:
            return 0
        result = await repo.find(field, value)
        if not result:
            self._report_failure("Search", result)
            return 0
        if result.count == 0:
            self.console.print("No results")
        return result.count

    async def filter(self, code: str, field: str, direction: str) -> OpResult:
        logger.info("Filtering choice: {}, field: {}, direction: {}", code, field, direction)
        repo = self._repo(code)
        if repo is None:
            return OpResult(OpStatus.INVALID_ENTITY)
        result = await repo.filter(field, direction)
        self._report_failure("Filter", result)
        return result

    async def display_all(self, code: str) -> OpResult:
        repo = self._repo(code)
        if repo is None:
            return OpResult(OpStatus.INVALID_ENTITY)
        result = await repo.show_all()
        self._report_failure("Display", result)
        return result

    async def join(self, code: str) -> int:
        target = JOIN_CODES.get(code)
        if target is None:
            logger.warning("Invalid join choice: {!r}", code)
            self.console.print("[red]Invalid entity choice[/]")
            return 0
        try:
            return await self.joiner.join(target)
        except (SQLAlchemyError, ValueError) as exc:
            logger.error("Error joining {}: {}", target, exc)
            self.console.print(f"[red]Error joining: {exc}[/]")
            return 0

    async def export_data(self, code: str, fmt: str) -> OpResult:
        logger.info("Exporting data for choice: {}, format: {}", code, fmt)
        repo = self._repo(code)
        if repo is None:
            return OpResult(OpStatus.INVALID_ENTITY)
        result = await repo.export_data(fmt)
        if result:
            self.console.print(f"Exported {result.count} records to {result.path}")
        else:
            self._report_failure("Export", result)
        return result


async def open_library(
    db: DatabaseService,
    renderer: Renderer,
    export_dir: Path,
    import_dir: Path,
    console: Console | None = None,
) -> Library:
    library = Library(db, renderer, export_dir=export_dir, import_dir=import_dir, console=console)
    await library.initialize()
    return library
