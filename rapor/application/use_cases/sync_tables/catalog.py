from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from rapor.domain.ports import QueryExecutor
from rapor.domain.sync_models import utc_now_iso
from rapor.infrastructure.schema_inspector import SqlSchemaInspector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableInfo:
    name: str
    column_count: int
    row_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "columnCount": self.column_count, "rowCount": self.row_count}


@dataclass(frozen=True)
class SchemaInfo:
    name: str
    tables: tuple[TableInfo, ...] = field(default_factory=tuple)

    @property
    def total_rows(self) -> int:
        return sum(table.row_count for table in self.tables)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tables": [table.to_dict() for table in self.tables],
            "tableCount": len(self.tables),
            "totalRows": self.total_rows,
        }


def describe_source(executor: QueryExecutor) -> dict[str, Any]:
    """Lists every user schema of the source with its tables, column and row counts."""

    inspector = SqlSchemaInspector(executor)
    schemas = []
    for schema_name in inspector.list_schemas():
        tables = []
        for table_name in inspector.list_tables(schema_name):
            row = executor.fetch_one(f"SELECT COUNT(*) AS count FROM {executor.qualified(table_name, schema_name)}")
            tables.append(
                TableInfo(
                    name=table_name,
                    column_count=len(inspector.get_columns(table_name, schema_name)),
                    row_count=int(row["count"]) if row else 0,
                )
            )
        schemas.append(SchemaInfo(schema_name, tuple(tables)))
    logger.info("Source catalog described", extra={"extra": {"schemas": len(schemas)}})
    return {
        "success": True,
        "schemas": [schema.to_dict() for schema in schemas],
        "totalSchemas": len(schemas),
        "timestamp": utc_now_iso(),
    }
