from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from rapor.domain.sync_models import SYNC_METADATA_COLUMNS

MergeCommand = Literal["SKIP", "INSERT", "UPDATE", "TOUCH"]


@dataclass(frozen=True)
class MergeAction:
    command: MergeCommand
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def counts_as_synced(self) -> bool:
        return self.command in ("INSERT", "UPDATE")


# Pure planner: the synchronizer only executes what this decides.
def plan_merge_action(
    source_row: Mapping[str, Any],
    *,
    primary_key: str,
    destination_row: Mapping[str, Any] | None,
    destination_columns: Iterable[str],
) -> MergeAction:
    key_value = source_row.get(primary_key)
    if key_value is None or key_value == "":
        return MergeAction("SKIP", {"reason": "missing_primary_key"})

    projected = project_row(source_row, destination_columns)
    if destination_row is None:
        return MergeAction("INSERT", {"key": key_value, "values": projected})
    if destination_row.get("is_locally_edited"):
        return MergeAction("TOUCH", {"key": key_value})

    updates = {
        column: value
        for column, value in projected.items()
        if column != primary_key and column not in SYNC_METADATA_COLUMNS
    }
    return MergeAction("UPDATE", {"key": key_value, "values": updates})


def project_row(row: Mapping[str, Any], destination_columns: Iterable[str]) -> dict[str, Any]:
    """Keeps only the columns the destination has, in the source row's order."""

    allowed = set(destination_columns)
    return {column: value for column, value in row.items() if column in allowed}


def dropped_columns(row: Mapping[str, Any], destination_columns: Iterable[str]) -> list[str]:
    allowed = set(destination_columns)
    return [column for column in row if column not in allowed]
