from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from rapor.core.errors import AuthorizationError, ValidationError
from rapor.domain.sync_models import TableDescriptor

ADMIN_LEVEL = "Admin"
UNAUTHORIZED_MESSAGE = "Unauthorized - Admin access required"
EMPTY_SELECTION_MESSAGE = "Tidak ada schema yang dipilih untuk disinkronkan"


@dataclass(frozen=True)
class SyncRequest:
    level: str
    tables: tuple[TableDescriptor, ...]


def authorize_admin(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid JSON in request body")
    if payload.get("level") != ADMIN_LEVEL:
        raise AuthorizationError(UNAUTHORIZED_MESSAGE)
    return payload


def parse_sync_request(payload: Any) -> SyncRequest:
    """Validates a trigger body and flattens its schema selection.

    The role claim comes from the request body and is not verified against a
    session.
    """

    payload = authorize_admin(payload)
    selected = payload.get("selectedSchemas")
    if not isinstance(selected, list) or not selected:
        raise ValidationError(EMPTY_SELECTION_MESSAGE)
    return SyncRequest(level=ADMIN_LEVEL, tables=tuple(descriptors_from_selection(selected)))


def descriptors_from_selection(selected_schemas: list[Any]) -> list[TableDescriptor]:
    descriptors: list[TableDescriptor] = []
    for entry in selected_schemas:
        if not isinstance(entry, Mapping):
            raise ValidationError("Each selected schema must be an object")
        schema_name = entry.get("name") or entry.get("schemaName")
        if not isinstance(schema_name, str) or not schema_name:
            raise ValidationError("Selected schema without name")
        for table_name in entry.get("selectedTables") or []:
            if not isinstance(table_name, str) or not table_name:
                raise ValidationError(f"Invalid table name in schema {schema_name}")
            descriptors.append(TableDescriptor(schema_name, table_name))
    return descriptors
