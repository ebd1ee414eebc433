from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import Select, and_, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from library_catalog.domain.models import CatalogEntity
from library_catalog.export.writers import EXPORT_FORMATS, write_export
from library_catalog.render.table import Renderer
from library_catalog.storage.db import DatabaseService
from library_catalog.storage.descriptors import EntityDescriptor
from library_catalog.storage.types import OpResult, OpStatus, RowSet


SORT_DIRECTIONS: tuple[str, ...] = ("up", "down")


class EntityRepository:
    """Storage and query surface over one entity table.

    Storage errors never escape: each operation logs them and reports an
    :class:`OpResult` whose status says what went wrong.
    """

    def __init__(
        self,
        db: DatabaseService,
        descriptor: EntityDescriptor,
        renderer: Renderer,
        export_dir: Path,
    ):
        self.db = db
        self.descriptor = descriptor
        self.renderer = renderer
        self.export_dir = export_dir
        self._log = logger.bind(entity=descriptor.name)

    @property
    def table(self):
        return self.descriptor.table

    @property
    def title(self) -> str:
        return self.descriptor.plural.capitalize()

    def _select_rows(self) -> Select:
        return select(*self.table.columns).order_by(self.table.c.id)

    async def _fetch(self, stmt: Select) -> RowSet:
        async with self.db.with_session() as session:
            result = await session.execute(stmt)
            rows = [tuple(row) for row in result.all()]
        return RowSet(headers=list(self.descriptor.columns), rows=rows)

    async def rows(self) -> RowSet:
        return await self._fetch(self._select_rows())

    async def initialize(self) -> bool:
        try:
            await self.db.create_table(self.table)
        except SQLAlchemyError as exc:
            self._log.error("Failed to initialize {} table: {}", self.descriptor.name, exc)
            return False
        self._log.info("{} table initialized", self.descriptor.name)
        return True

    async def exists(self, entity: CatalogEntity) -> bool:
        conditions = [self.table.c[name] == getattr(entity, name) for name in self.descriptor.natural_key]
        stmt = select(self.table.c.id).where(and_(*conditions)).limit(1)
        try:
            async with self.db.with_session() as session:
                found = (await session.execute(stmt)).first() is not None
        except SQLAlchemyError as exc:
            self._log.error("Failed to check {} existence: {}", self.descriptor.name, exc)
            return False
        self._log.debug("Checked existence of {}: {}", self._natural_key_text(entity), found)
        return found

    def _natural_key_text(self, entity: CatalogEntity) -> str:
        return ", ".join(f"{name}={getattr(entity, name)!r}" for name in self.descriptor.natural_key)

    async def save(self, entity: CatalogEntity) -> OpResult:
        if await self.exists(entity):
            self._log.warning("{} already exists: {}", self.descriptor.name, self._natural_key_text(entity))
            return OpResult(OpStatus.DUPLICATE, message=f"{self.descriptor.name} already exists")

        stmt = insert(self.table).values(**self.descriptor.values_of(entity))
        try:
            async with self.db.session_scope() as session:
                result = await session.execute(stmt)
                new_id = int(result.inserted_primary_key[0])
        except SQLAlchemyError as exc:
            self._log.error("Failed to save {}: {}", self._natural_key_text(entity), exc)
            return OpResult(OpStatus.STORAGE_ERROR, message=str(exc))

        entity.id = new_id
        self._log.info("Saved {} with ID {}", self.descriptor.name, new_id)
        return OpResult(OpStatus.OK, id=new_id, count=1)

    async def show_all(self) -> OpResult:
        try:
            row_set = await self.rows()
        except SQLAlchemyError as exc:
            self._log.error("Failed to retrieve {}: {}", self.descriptor.plural, exc)
            return OpResult(OpStatus.STORAGE_ERROR, message=str(exc))

        self._log.info("Retrieved {} {} for display", len(row_set), self.descriptor.plural)
        self.renderer.render(self.title, row_set.headers, row_set.rows)
        return OpResult(OpStatus.OK, count=len(row_set))

    def _coerce(self, field: str, value: Any) -> tuple[Any, OpResult | None]:
        try:
            return self.descriptor.coerce(field, value), None
        except (TypeError, ValueError):
            self._log.error("Invalid value for {}.{}: {!r}", self.descriptor.name, field, value)
            return None, OpResult(OpStatus.INVALID_VALUE, message=f"invalid value for {field}: {value!r}")

    def _invalid_field(self, field: str) -> OpResult:
        self._log.error("Unknown {} field: {!r}", self.descriptor.name, field)
        return OpResult(OpStatus.INVALID_FIELD, message=f"unknown field: {field}")

    async def update(self, field: str, record_id: int, new_value: Any) -> OpResult:
        if field not in self.descriptor.editable:
            return self._invalid_field(field)
        column = self.table.c[field]
        value, error = self._coerce(field, new_value)
        if error is not None:
            return error

        id_column = self.table.c.id
        try:
            async with self.db.session_scope() as session:
                found = (await session.execute(select(id_column).where(id_column == record_id))).first()
                if found is None:
                    self._log.warning("{} {} not found for update", self.descriptor.name, record_id)
                    return OpResult(OpStatus.NOT_FOUND, id=record_id)
                await session.execute(update(self.table).where(id_column == record_id).values({column: value}))
        except SQLAlchemyError as exc:
            self._log.error("Failed to update {} {}: {}", self.descriptor.name, record_id, exc)
            return OpResult(OpStatus.STORAGE_ERROR, id=record_id, message=str(exc))

        self._log.info("Updated field '{}' for {} {} to {!r}", field, self.descriptor.name, record_id, value)
        return OpResult(OpStatus.OK, id=record_id, count=1)

    async def delete(self, field: str, value: Any) -> OpResult:
        column = self.descriptor.column(field)
        if column is None:
            return self._invalid_field(field)
        value, error = self._coerce(field, value)
        if error is not None:
            return error

        try:
            async with self.db.session_scope() as session:
                found = (await session.execute(select(self.table.c.id).where(column == value).limit(1))).first()
                if found is None:
                    self._log.warning("No {} found with {} = {!r}", self.descriptor.name, field, value)
                    return OpResult(OpStatus.NOT_FOUND)
                result = await session.execute(delete(self.table).where(column == value))
                removed = int(result.rowcount or 0)
        except SQLAlchemyError as exc:
            self._log.error("Failed to delete {} with {} = {!r}: {}", self.descriptor.name, field, value, exc)
            return OpResult(OpStatus.STORAGE_ERROR, message=str(exc))

        self._log.info("Deleted {} {} with {} = {!r}", removed, self.descriptor.plural, field, value)
        return OpResult(OpStatus.OK, count=removed)

    async def filter(self, field: str, direction: str) -> OpResult:
        column = self.descriptor.column(field)
        if column is None:
            return self._invalid_field(field)
        if direction not in SORT_DIRECTIONS:
            self._log.error("Invalid sort direction: {!r}", direction)
            return OpResult(OpStatus.INVALID_DIRECTION, message=f"invalid sort direction: {direction}")

        order = column.asc() if direction == "up" else column.desc()
        stmt = select(*self.table.columns).order_by(order, self.table.c.id)
        try:
            row_set = await self._fetch(stmt)
        except SQLAlchemyError as exc:
            self._log.error("Failed to filter {}: {}", self.descriptor.plural, exc)
            return OpResult(OpStatus.STORAGE_ERROR, message=str(exc))

        self._log.info("Filtered {} {} by {} {}", len(row_set), self.descriptor.plural, field, direction)
        arrow = "ascending" if direction == "up" else "descending"
        self.renderer.render(f"{self.title} by {field} ({arrow})", row_set.headers, row_set.rows)
        return OpResult(OpStatus.OK, count=len(row_set))

    async def find(self, field: str, value: Any) -> OpResult:
        column = self.descriptor.column(field)
        if column is None:
            return self._invalid_field(field)
        value, error = self._coerce(field, value)
        if error is not None:
            return error

        stmt = self._select_rows().where(column == value)
        try:
            row_set = await self._fetch(stmt)
        except SQLAlchemyError as exc:
            self._log.error("Failed to find {} with {} = {!r}: {}", self.descriptor.plural, field, value, exc)
            return OpResult(OpStatus.STORAGE_ERROR, message=str(exc))

        self._log.info("Found {} {} with {} = {!r}", len(row_set), self.descriptor.plural, field, value)
        self.renderer.render(f"{self.title} where {field} = {value}", row_set.headers, row_set.rows)
        return OpResult(OpStatus.OK, count=len(row_set))

    async def export_data(self, fmt: str) -> OpResult:
        if fmt not in EXPORT_FORMATS:
            self._log.error("Invalid export format: {!r}", fmt)
            return OpResult(OpStatus.INVALID_FORMAT, message=f"invalid export format: {fmt}")

        try:
            row_set = await self.rows()
        except SQLAlchemyError as exc:
            self._log.error("Failed to load {} for export: {}", self.descriptor.plural, exc)
            return OpResult(OpStatus.STORAGE_ERROR, message=str(exc))

        try:
            target = write_export(row_set, fmt, self.export_dir, self.descriptor.name)
        except OSError as exc:
            self._log.error("Failed to export {}: {}", self.descriptor.plural, exc)
            return OpResult(OpStatus.IO_ERROR, message=str(exc))

        self._log.info("Exported {} {} to {}", len(row_set), self.descriptor.plural, target)
        return OpResult(OpStatus.OK, count=len(row_set), path=target)
