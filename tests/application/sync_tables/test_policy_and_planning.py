from __future__ import annotations

import pytest

from rapor.application.use_cases.sync_tables.action_planning import dropped_columns, plan_merge_action, project_row
from rapor.application.use_cases.sync_tables.policy import classify
from rapor.domain.sync_models import SyncPolicy

DEST_COLUMNS = ("peserta_didik_id", "nm_siswa", "nis", "is_locally_edited", "last_local_sync")


@pytest.mark.parametrize("table", ["tabel_siswa", "tabel_siswa_pelengkap"])
def test_student_tables_are_merged(table: str) -> None:
    assert classify(table) is SyncPolicy.SELECTIVE_MERGE


@pytest.mark.parametrize("table", ["tabel_kelas", "tabel_nilaiakhir", "TABEL_SISWA", "siswa"])
def test_other_tables_are_replaced(table: str) -> None:
    assert classify(table) is SyncPolicy.FORCED_REPLACE


def test_missing_key_is_skipped() -> None:
    action = plan_merge_action(
        {"peserta_didik_id": "", "nm_siswa": "x"},
        primary_key="peserta_didik_id",
        destination_row=None,
        destination_columns=DEST_COLUMNS,
    )

    assert action.command == "SKIP"
    assert not action.counts_as_synced


def test_absent_row_is_inserted_with_projected_values() -> None:
    action = plan_merge_action(
        {"peserta_didik_id": "S3", "nm_siswa": "Citra", "kolom_baru": 1},
        primary_key="peserta_didik_id",
        destination_row=None,
        destination_columns=DEST_COLUMNS,
    )

    assert action.command == "INSERT"
    assert action.payload["values"] == {"peserta_didik_id": "S3", "nm_siswa": "Citra"}
    assert action.counts_as_synced


def test_locally_edited_row_is_only_touched() -> None:
    action = plan_merge_action(
        {"peserta_didik_id": "S2", "nm_siswa": "Ani"},
        primary_key="peserta_didik_id",
        destination_row={"peserta_didik_id": "S2", "is_locally_edited": 1},
        destination_columns=DEST_COLUMNS,
    )

    assert action.command == "TOUCH"
    assert action.payload == {"key": "S2"}
    assert not action.counts_as_synced


def test_clean_row_is_updated_without_key_or_sync_columns() -> None:
    action = plan_merge_action(
        {"peserta_didik_id": "S1", "nm_siswa": "Budi", "is_locally_edited": True},
        primary_key="peserta_didik_id",
        destination_row={"peserta_didik_id": "S1", "is_locally_edited": 0},
        destination_columns=DEST_COLUMNS,
    )

    assert action.command == "UPDATE"
    assert action.payload["values"] == {"nm_siswa": "Budi"}


def test_projection_helpers() -> None:
    row = {"a": 1, "b": 2, "c": 3}

    assert project_row(row, ["c", "a"]) == {"a": 1, "c": 3}
    assert dropped_columns(row, ["a"]) == ["b", "c"]
