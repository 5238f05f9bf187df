from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from rapor.application.use_cases.sync_tables.action_planning import (
    MergeAction,
    dropped_columns,
    plan_merge_action,
    project_row,
)
from rapor.application.use_cases.sync_tables.policy import classify
from rapor.core.errors import PersistenceError
from rapor.domain.ports import QueryExecutor, SchemaInspector
from rapor.domain.sync_models import (
    IS_LOCALLY_EDITED,
    LAST_LOCAL_SYNC,
    SYNC_METADATA_COLUMNS,
    SyncPolicy,
    TableDescriptor,
    TableSyncResult,
)
from rapor.infrastructure.schema_inspector import DEFAULT_PRIMARY_KEY, SqlSchemaInspector

logger = logging.getLogger(__name__)

INSERT_BATCH_SIZE = 500
SOURCE_KEY_CANDIDATES = ("peserta_didik_id", "nis", "nisn", "id")
_SYNC_COLUMN_DDL = (
    (IS_LOCALLY_EDITED, "BOOLEAN DEFAULT FALSE"),
    (LAST_LOCAL_SYNC, "TIMESTAMP"),
)
_ALREADY_EXISTS_MARKERS = ("already exists", "duplicate column")

InspectorFactory = Callable[[QueryExecutor], SchemaInspector]


class TableSynchronizer:
    """Copies one source table into the destination store.

    Every statement is issued on its own; nothing spans the whole table, so a
    failure half way leaves the destination as far as it got.
    """

    def __init__(
        self,
        source: QueryExecutor,
        destination: QueryExecutor,
        *,
        destination_schema: str | None = None,
        batch_size: int = INSERT_BATCH_SIZE,
        inspector_factory: InspectorFactory = SqlSchemaInspector,
    ) -> None:
        self._source = source
        self._destination = destination
        self._source_inspector = inspector_factory(source)
        self._destination_inspector = inspector_factory(destination)
        self._destination_schema = destination_schema
        self._batch_size = max(1, batch_size)

    def sync(self, descriptor: TableDescriptor) -> TableSyncResult:
        policy = classify(descriptor.table_name)
        if policy is SyncPolicy.SELECTIVE_MERGE:
            return self.selective_merge(descriptor)
        return self.forced_replace(descriptor)

    def forced_replace(self, descriptor: TableDescriptor) -> TableSyncResult:
        created = self._ensure_destination_table(descriptor)
        rows = self._fetch_source_rows(descriptor)
        target = self._target(descriptor)

        deleted = self._destination.execute(f"DELETE FROM {target}")
        logger.debug("Destination cleared", extra={"extra": {"table": descriptor.table_name, "deleted": deleted}})
        if not rows:
            return TableSyncResult(descriptor, SyncPolicy.FORCED_REPLACE, table_created=created)

        columns = self._destination_inspector.get_columns(descriptor.table_name, self._destination_schema)
        inserted = self._insert_rows(target, rows, columns)
        logger.info(
            "Forced replace finished",
            extra={"extra": {"table": descriptor.qualified_name, "inserted": inserted}},
        )
        return TableSyncResult(descriptor, SyncPolicy.FORCED_REPLACE, inserted=inserted, table_created=created)

    def selective_merge(self, descriptor: TableDescriptor) -> TableSyncResult:
        created = self._ensure_destination_table(descriptor)
        self.ensure_sync_columns(descriptor.table_name)
        rows = self._fetch_source_rows(descriptor)
        if not rows:
            logger.info("Source table empty, nothing to merge", extra={"extra": {"table": descriptor.qualified_name}})
            return TableSyncResult(descriptor, SyncPolicy.SELECTIVE_MERGE, table_created=created)

        primary_key = self.resolve_primary_key(descriptor, rows[0])
        columns = self._destination_inspector.get_columns(descriptor.table_name, self._destination_schema)
        target = self._target(descriptor)
        counts = {"INSERT": 0, "UPDATE": 0, "TOUCH": 0, "SKIP": 0}

        for row in rows:
            existing = None
            key_value = row.get(primary_key)
            if key_value is not None and key_value != "":
                existing = self._destination.fetch_one(
                    f"SELECT {self._destination.quote(primary_key)}, {self._destination.quote(IS_LOCALLY_EDITED)} "
                    f"FROM {target} WHERE {self._destination.quote(primary_key)} = {self._destination.placeholder}",
                    (key_value,),
                )
            action = plan_merge_action(
                row,
                primary_key=primary_key,
                destination_row=existing,
                destination_columns=columns,
            )
            self._apply_merge_action(target, primary_key, action)
            counts[action.command] += 1

        if counts["SKIP"]:
            logger.warning(
                "Rows without primary key skipped",
                extra={"extra": {"table": descriptor.qualified_name, "primary_key": primary_key, "skipped": counts["SKIP"]}},
            )
        logger.info(
            "Selective merge finished",
            extra={"extra": {"table": descriptor.qualified_name, **{key.lower(): value for key, value in counts.items()}}},
        )
        return TableSyncResult(
            descriptor,
            SyncPolicy.SELECTIVE_MERGE,
            inserted=counts["INSERT"],
            updated=counts["UPDATE"],
            touched=counts["TOUCH"],
            skipped=counts["SKIP"],
            table_created=created,
        )

    def ensure_sync_columns(self, table: str) -> None:
        target = self._destination.qualified(table, self._destination_schema)
        for column, ddl in _SYNC_COLUMN_DDL:
            if self._destination_inspector.has_column(table, column, self._destination_schema):
                continue
            try:
                self._destination.execute(f"ALTER TABLE {target} ADD COLUMN {self._destination.quote(column)} {ddl}")
            except PersistenceError as exc:
                if not any(marker in str(exc).lower() for marker in _ALREADY_EXISTS_MARKERS):
                    raise
                logger.debug("Sync column already present", extra={"extra": {"table": table, "column": column}})

    def resolve_primary_key(self, descriptor: TableDescriptor, sample_row: Mapping[str, Any]) -> str:
        key = self._source_inspector.find_primary_key(descriptor.table_name, descriptor.schema_name)
        if key is not None:
            return key
        for candidate in SOURCE_KEY_CANDIDATES:
            if sample_row.get(candidate) is not None:
                logger.info(
                    "Primary key inferred from sample row",
                    extra={"extra": {"table": descriptor.qualified_name, "primary_key": candidate}},
                )
                return candidate
        logger.warning(
            "No primary key found, falling back to %r",
            DEFAULT_PRIMARY_KEY,
            extra={"extra": {"table": descriptor.qualified_name}},
        )
        return DEFAULT_PRIMARY_KEY

    def create_table_from_source(self, descriptor: TableDescriptor) -> None:
        definitions = self._source_inspector.get_column_definitions(descriptor.table_name, descriptor.schema_name)
        if not definitions:
            raise PersistenceError(f"No columns found for table {descriptor.qualified_name}")
        column_sql = []
        for definition in definitions:
            fragment = f"{self._destination.quote(definition.name)} {definition.ddl_type()}"
            if not definition.is_nullable:
                fragment += " NOT NULL"
            column_sql.append(fragment)
        target = self._target(descriptor)
        self._destination.execute(f"CREATE TABLE {target} ({', '.join(column_sql)})")
        logger.info(
            "Destination table created from source catalog",
            extra={"extra": {"table": descriptor.table_name, "columns": len(column_sql)}},
        )

    def _ensure_destination_table(self, descriptor: TableDescriptor) -> bool:
        if self._destination_inspector.table_exists(descriptor.table_name, self._destination_schema):
            return False
        logger.warning("Destination table missing", extra={"extra": {"table": descriptor.table_name}})
        self.create_table_from_source(descriptor)
        return True

    def _fetch_source_rows(self, descriptor: TableDescriptor) -> list[dict[str, Any]]:
        source_table = self._source.qualified(descriptor.table_name, descriptor.schema_name)
        return self._source.fetch_all(f"SELECT * FROM {source_table}")

    def _target(self, descriptor: TableDescriptor) -> str:
        return self._destination.qualified(descriptor.table_name, self._destination_schema)

    def _insert_rows(self, target: str, rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> int:
        dropped = dropped_columns(rows[0], columns)
        if dropped:
            logger.debug("Source columns missing in destination", extra={"extra": {"target": target, "dropped": dropped}})

        inserted = 0
        batch: list[tuple[Any, ...]] = []
        batch_columns: tuple[str, ...] | None = None
        for row in rows:
            projected = project_row(row, columns)
            if not projected:
                raise PersistenceError(f"No destination column of {target} matches the source row")
            row_columns = tuple(projected)
            if batch and row_columns != batch_columns:
                inserted += self._flush(target, batch_columns, batch)
                batch = []
            batch_columns = row_columns
            batch.append(tuple(projected.values()))
            if len(batch) >= self._batch_size:
                inserted += self._flush(target, batch_columns, batch)
                batch = []
        if batch and batch_columns:
            inserted += self._flush(target, batch_columns, batch)
        return inserted

    def _flush(self, target: str, columns: tuple[str, ...] | None, batch: list[tuple[Any, ...]]) -> int:
        if not columns:
            return 0
        column_list = ", ".join(self._destination.quote(column) for column in columns)
        sql = f"INSERT INTO {target} ({column_list}) VALUES ({self._destination.placeholders(len(columns))})"
        return self._destination.execute_many(sql, batch)

    def _apply_merge_action(self, target: str, primary_key: str, action: MergeAction) -> None:
        if action.command == "SKIP":
            logger.debug("Row skipped", extra={"extra": {"target": target, **action.payload}})
            return

        quote = self._destination.quote
        ph = self._destination.placeholder
        key_clause = f"{quote(primary_key)} = {ph}"

        if action.command == "INSERT":
            values = {
                column: value
                for column, value in action.payload["values"].items()
                if column not in SYNC_METADATA_COLUMNS
            }
            column_list = ", ".join([*(quote(column) for column in values), quote(IS_LOCALLY_EDITED), quote(LAST_LOCAL_SYNC)])
            value_list = ", ".join([*([ph] * len(values)), ph, "CURRENT_TIMESTAMP"])
            self._destination.execute(
                f"INSERT INTO {target} ({column_list}) VALUES ({value_list})",
                (*values.values(), False),
            )
            return

        if action.command == "TOUCH":
            self._destination.execute(
                f"UPDATE {target} SET {quote(LAST_LOCAL_SYNC)} = CURRENT_TIMESTAMP WHERE {key_clause}",
                (action.payload["key"],),
            )
            return

        updates: dict[str, Any] = action.payload["values"]
        assignments = [f"{quote(column)} = {ph}" for column in updates]
        assignments.append(f"{quote(LAST_LOCAL_SYNC)} = CURRENT_TIMESTAMP")
        self._destination.execute(
            f"UPDATE {target} SET {', '.join(assignments)} WHERE {key_clause}",
            (*updates.values(), action.payload["key"]),
        )
