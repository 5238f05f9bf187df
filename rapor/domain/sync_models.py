from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Union

SELECTIVE_MERGE_TABLES = frozenset({"tabel_siswa", "tabel_siswa_pelengkap"})

IS_LOCALLY_EDITED = "is_locally_edited"
LAST_LOCAL_SYNC = "last_local_sync"
SYNC_METADATA_COLUMNS = (IS_LOCALLY_EDITED, LAST_LOCAL_SYNC)

SourceRow = dict[str, Any]
DestRow = dict[str, Any]


class SyncPolicy(str, Enum):
    FORCED_REPLACE = "forced_replace"
    SELECTIVE_MERGE = "selective_merge"


@dataclass(frozen=True)
class TableDescriptor:
    schema_name: str
    table_name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


_TYPE_MAP = {
    "integer": "INTEGER",
    "int": "INTEGER",
    "bigint": "BIGINT",
    "smallint": "SMALLINT",
    "boolean": "BOOLEAN",
    "text": "TEXT",
    "date": "DATE",
    "timestamp without time zone": "TIMESTAMP",
    "timestamp with time zone": "TIMESTAMPTZ",
    "time without time zone": "TIME",
    "uuid": "UUID",
    "json": "JSON",
    "jsonb": "JSONB",
    "real": "REAL",
    "double precision": "DOUBLE PRECISION",
    "bytea": "BYTEA",
}


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    data_type: str
    character_maximum_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    is_nullable: bool = True
    default: str | None = None

    def ddl_type(self) -> str:
        data_type = (self.data_type or "text").lower()
        if data_type in {"character varying", "varchar"}:
            return f"VARCHAR({self.character_maximum_length})" if self.character_maximum_length else "TEXT"
        if data_type in {"character", "char"}:
            return f"CHAR({self.character_maximum_length})" if self.character_maximum_length else "CHAR(1)"
        if data_type in {"numeric", "decimal"}:
            if self.numeric_precision and self.numeric_scale:
                return f"NUMERIC({self.numeric_precision},{self.numeric_scale})"
            return "NUMERIC"
        return _TYPE_MAP.get(data_type, data_type.upper())


@dataclass(frozen=True)
class ProgressEvent:
    schema: str
    table: str
    records: int = 0
    type: Literal["progress"] = field(default="progress", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "schema": self.schema, "table": self.table, "records": self.records}


@dataclass(frozen=True)
class CompleteEvent:
    schema: str
    table: str
    records: int
    type: Literal["complete"] = field(default="complete", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "schema": self.schema, "table": self.table, "records": self.records}


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    schema: str | None = None
    table: str | None = None
    type: Literal["error"] = field(default="error", init=False)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.schema is not None:
            payload["schema"] = self.schema
        if self.table is not None:
            payload["table"] = self.table
        return payload


@dataclass(frozen=True)
class DoneEvent:
    tables_synced: int
    total_records: int
    timestamp: str
    type: Literal["done"] = field(default="done", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "tablesSynced": self.tables_synced,
            "totalRecords": self.total_records,
            "timestamp": self.timestamp,
        }


SyncProgressEvent = Union[ProgressEvent, CompleteEvent, ErrorEvent, DoneEvent]


@dataclass(frozen=True)
class TableSyncResult:
    descriptor: TableDescriptor
    policy: SyncPolicy
    inserted: int = 0
    updated: int = 0
    touched: int = 0
    skipped: int = 0
    table_created: bool = False

    @property
    def records(self) -> int:
        return self.inserted + self.updated


@dataclass(frozen=True)
class SyncSessionSummary:
    tables_synced: int
    total_records: int
    failed_tables: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    started_at: str = ""
    finished_at: str = ""

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "tablesSynced": self.tables_synced,
            "totalRecords": self.total_records,
            "failedTables": list(self.failed_tables),
            "errors": list(self.errors),
            "startedAt": self.started_at,
            "timestamp": self.finished_at,
        }


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
