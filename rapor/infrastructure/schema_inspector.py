from __future__ import annotations

import logging
from typing import Any

from rapor.domain.ports import QueryExecutor, SchemaInspector
from rapor.domain.sync_models import ColumnDefinition

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_KEY = "id"


class SqlSchemaInspector(SchemaInspector):
    """Live catalog introspection for one store.

    PostgreSQL (and anything exposing ``information_schema``) is read through
    the standard catalog views; SQLite through ``PRAGMA table_info``. Nothing
    is cached: every call goes to the database.
    """

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    @property
    def _is_sqlite(self) -> bool:
        return self._executor.dialect == "sqlite"

    def get_primary_key(self, table: str, schema: str | None = None) -> str:
        key = self.find_primary_key(table, schema)
        if key is not None:
            return key
        logger.warning(
            "No primary key found, falling back to %r",
            DEFAULT_PRIMARY_KEY,
            extra={"extra": {"table": table, "schema": schema}},
        )
        return DEFAULT_PRIMARY_KEY

    def find_primary_key(self, table: str, schema: str | None = None) -> str | None:
        if self._is_sqlite:
            key_columns = sorted(
                (row for row in self._pragma_table_info(table, schema) if row["pk"]),
                key=lambda row: row["pk"],
            )
            return str(key_columns[0]["name"]) if key_columns else None

        ph = self._executor.placeholder
        sql = (
            "SELECT kcu.column_name AS column_name "
            "FROM information_schema.table_constraints tc "
            "JOIN information_schema.key_column_usage kcu "
            "ON tc.constraint_name = kcu.constraint_name "
            "AND tc.table_schema = kcu.table_schema "
            "AND tc.table_name = kcu.table_name "
            f"WHERE tc.constraint_type = 'PRIMARY KEY' AND tc.table_name = {ph} "
            f"AND tc.table_schema = {self._schema_expr(schema)} "
            "ORDER BY kcu.ordinal_position"
        )
        row = self._executor.fetch_one(sql, self._params(table, schema))
        return str(row["column_name"]) if row else None

    def get_columns(self, table: str, schema: str | None = None) -> list[str]:
        return [column.name for column in self.get_column_definitions(table, schema)]

    def get_column_definitions(self, table: str, schema: str | None = None) -> list[ColumnDefinition]:
        if self._is_sqlite:
            return [
                ColumnDefinition(
                    name=str(row["name"]),
                    data_type=str(row["type"] or "TEXT"),
                    is_nullable=not row["notnull"],
                    default=row["dflt_value"],
                )
                for row in sorted(self._pragma_table_info(table, schema), key=lambda row: row["cid"])
            ]
        ph = self._executor.placeholder
        sql = (
            "SELECT column_name, data_type, character_maximum_length, numeric_precision, "
            "numeric_scale, is_nullable, column_default "
            "FROM information_schema.columns "
            f"WHERE table_name = {ph} AND table_schema = {self._schema_expr(schema)} "
            "ORDER BY ordinal_position"
        )
        return [
            ColumnDefinition(
                name=str(row["column_name"]),
                data_type=str(row["data_type"]),
                character_maximum_length=row.get("character_maximum_length"),
                numeric_precision=row.get("numeric_precision"),
                numeric_scale=row.get("numeric_scale"),
                is_nullable=str(row.get("is_nullable", "YES")).upper() != "NO",
                default=row.get("column_default"),
            )
            for row in self._executor.fetch_all(sql, self._params(table, schema))
        ]

    def has_column(self, table: str, column: str, schema: str | None = None) -> bool:
        return column in self.get_columns(table, schema)

    def table_exists(self, table: str, schema: str | None = None) -> bool:
        ph = self._executor.placeholder
        if self._is_sqlite:
            master = f"{self._executor.quote(schema)}.sqlite_master" if schema else "sqlite_master"
            row = self._executor.fetch_one(
                f"SELECT name FROM {master} WHERE type = 'table' AND name = {ph}",
                (table,),
            )
            return row is not None
        row = self._executor.fetch_one(
            "SELECT COUNT(*) AS count FROM information_schema.tables "
            f"WHERE table_name = {ph} AND table_schema = {self._schema_expr(schema)}",
            self._params(table, schema),
        )
        return bool(row and int(row["count"]) > 0)

    def list_schemas(self) -> list[str]:
        if self._is_sqlite:
            return [str(row["name"]) for row in self._executor.fetch_all("PRAGMA database_list")]
        rows = self._executor.fetch_all(
            "SELECT schema_name FROM information_schema.schemata "
            "WHERE schema_name NOT IN ('pg_catalog', 'information_schema', 'pg_toast') "
            "ORDER BY schema_name"
        )
        return [str(row["schema_name"]) for row in rows]

    def list_tables(self, schema: str | None = None) -> list[str]:
        if self._is_sqlite:
            master = f"{self._executor.quote(schema)}.sqlite_master" if schema else "sqlite_master"
            rows = self._executor.fetch_all(
                f"SELECT name FROM {master} WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            return [str(row["name"]) for row in rows]
        rows = self._executor.fetch_all(
            "SELECT table_name FROM information_schema.tables "
            f"WHERE table_schema = {self._schema_expr(schema)} AND table_type = 'BASE TABLE' "
            "ORDER BY table_name",
            (schema,) if schema else (),
        )
        return [str(row["table_name"]) for row in rows]

    def _pragma_table_info(self, table: str, schema: str | None) -> list[dict[str, Any]]:
        prefix = f"{self._executor.quote(schema)}." if schema else ""
        return self._executor.fetch_all(f"PRAGMA {prefix}table_info({self._executor.quote(table)})")

    def _schema_expr(self, schema: str | None) -> str:
        if schema:
            return self._executor.placeholder
        return "current_schema()"

    @staticmethod
    def _params(table: str, schema: str | None) -> tuple[Any, ...]:
        return (table, schema) if schema else (table,)
