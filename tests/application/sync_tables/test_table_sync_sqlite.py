from __future__ import annotations

import pytest

from rapor.application.use_cases.sync_tables.table_sync import TableSynchronizer
from rapor.core.errors import PersistenceError
from rapor.domain.ports import QueryExecutor, SchemaInspector
from rapor.domain.sync_models import SyncPolicy, TableDescriptor
from rapor.infrastructure.query_executor import SqlAlchemyQueryExecutor
from rapor.infrastructure.schema_inspector import SqlSchemaInspector

SISWA = TableDescriptor("main", "tabel_siswa")
KELAS = TableDescriptor("main", "tabel_kelas")


@pytest.fixture
def synchronizer(source_executor, destination_executor) -> TableSynchronizer:
    return TableSynchronizer(source_executor, destination_executor, batch_size=2)


def _seed_kelas(executor, rows) -> None:
    executor.execute("CREATE TABLE IF NOT EXISTS tabel_kelas (rombongan_belajar_id TEXT PRIMARY KEY, nm_kelas TEXT)")
    executor.execute_many("INSERT INTO tabel_kelas VALUES (?, ?)", rows)


def _seed_source_siswa(executor) -> None:
    executor.execute("CREATE TABLE tabel_siswa (id INTEGER PRIMARY KEY, nm_siswa TEXT, nis TEXT, agama TEXT)")
    executor.execute_many(
        "INSERT INTO tabel_siswa VALUES (?, ?, ?, ?)",
        [(1, "Budi Santoso", "1001", "Islam"), (2, "Ani Lestari", "1002", "Islam"), (3, "Citra Dewi", "1003", "Kristen")],
    )


def _seed_destination_siswa(executor) -> None:
    executor.execute(
        "CREATE TABLE tabel_siswa (id INTEGER PRIMARY KEY, nm_siswa TEXT, nis TEXT, "
        "is_locally_edited BOOLEAN DEFAULT FALSE, last_local_sync TIMESTAMP)"
    )
    executor.execute_many(
        "INSERT INTO tabel_siswa (id, nm_siswa, nis, is_locally_edited) VALUES (?, ?, ?, ?)",
        [(1, "Budi (lama)", "0000", False), (2, "Ani (diedit guru)", "1002", True)],
    )


def test_forced_replace_is_idempotent(synchronizer, source_executor, destination_executor) -> None:
    _seed_kelas(source_executor, [("R1", "X-1"), ("R2", "X-2"), ("R3", "XI-1")])
    _seed_kelas(destination_executor, [("OLD", "stale")])

    first = synchronizer.sync(KELAS)
    snapshot = destination_executor.fetch_all("SELECT * FROM tabel_kelas ORDER BY rombongan_belajar_id")
    second = synchronizer.sync(KELAS)

    assert first.policy is SyncPolicy.FORCED_REPLACE
    assert first.records == second.records == 3
    assert snapshot == [
        {"rombongan_belajar_id": "R1", "nm_kelas": "X-1"},
        {"rombongan_belajar_id": "R2", "nm_kelas": "X-2"},
        {"rombongan_belajar_id": "R3", "nm_kelas": "XI-1"},
    ]
    assert destination_executor.fetch_all("SELECT * FROM tabel_kelas ORDER BY rombongan_belajar_id") == snapshot


def test_forced_replace_with_empty_source_clears_destination(synchronizer, source_executor, destination_executor) -> None:
    source_executor.execute("CREATE TABLE tabel_kelas (rombongan_belajar_id TEXT PRIMARY KEY, nm_kelas TEXT)")
    _seed_kelas(destination_executor, [("OLD", "stale")])

    result = synchronizer.sync(KELAS)

    assert result.records == 0
    assert destination_executor.fetch_all("SELECT * FROM tabel_kelas") == []


def test_forced_replace_drops_columns_missing_in_destination(synchronizer, source_executor, destination_executor) -> None:
    source_executor.execute("CREATE TABLE tabel_kelas (rombongan_belajar_id TEXT, nm_kelas TEXT, kurikulum TEXT)")
    source_executor.execute("INSERT INTO tabel_kelas VALUES ('R1', 'X-1', 'Merdeka')")
    destination_executor.execute("CREATE TABLE tabel_kelas (rombongan_belajar_id TEXT, nm_kelas TEXT)")

    synchronizer.sync(KELAS)

    assert destination_executor.fetch_all("SELECT * FROM tabel_kelas") == [
        {"rombongan_belajar_id": "R1", "nm_kelas": "X-1"}
    ]


def test_missing_destination_table_is_created_from_source(synchronizer, source_executor, destination_executor) -> None:
    _seed_kelas(source_executor, [("R1", "X-1")])

    result = synchronizer.sync(KELAS)

    assert result.table_created
    assert SqlSchemaInspector(destination_executor).get_columns("tabel_kelas") == ["rombongan_belajar_id", "nm_kelas"]
    assert destination_executor.fetch_one("SELECT COUNT(*) AS count FROM tabel_kelas")["count"] == 1


def test_missing_source_table_fails(synchronizer) -> None:
    with pytest.raises(PersistenceError, match="No columns found"):
        synchronizer.sync(TableDescriptor("main", "tabel_tidak_ada"))


def test_selective_merge_scenario(synchronizer, source_executor, destination_executor) -> None:
    _seed_source_siswa(source_executor)
    _seed_destination_siswa(destination_executor)

    result = synchronizer.sync(SISWA)

    rows = {row["id"]: row for row in destination_executor.fetch_all("SELECT * FROM tabel_siswa")}
    assert result.policy is SyncPolicy.SELECTIVE_MERGE
    assert (result.inserted, result.updated, result.touched) == (1, 1, 1)
    assert result.records == 2
    assert len(rows) == 3
    assert rows[1]["nm_siswa"] == "Budi Santoso"
    assert rows[1]["nis"] == "1001"
    assert rows[2]["nm_siswa"] == "Ani (diedit guru)"
    assert rows[2]["last_local_sync"] is not None
    assert rows[3]["nm_siswa"] == "Citra Dewi"
    assert not rows[3]["is_locally_edited"]
    assert rows[3]["last_local_sync"] is not None


def test_selective_merge_keeps_locally_edited_rows_across_runs(synchronizer, source_executor, destination_executor) -> None:
    _seed_source_siswa(source_executor)
    _seed_destination_siswa(destination_executor)

    synchronizer.sync(SISWA)
    source_executor.execute("UPDATE tabel_siswa SET nm_siswa = 'Ani Baru' WHERE id = 2")
    second = synchronizer.sync(SISWA)

    row = destination_executor.fetch_one("SELECT nm_siswa, is_locally_edited FROM tabel_siswa WHERE id = 2")
    assert row["nm_siswa"] == "Ani (diedit guru)"
    assert row["is_locally_edited"]
    assert (second.inserted, second.updated, second.touched) == (0, 2, 1)


def test_selective_merge_adds_sync_columns(synchronizer, source_executor, destination_executor) -> None:
    _seed_source_siswa(source_executor)
    destination_executor.execute("CREATE TABLE tabel_siswa (id INTEGER PRIMARY KEY, nm_siswa TEXT, nis TEXT)")

    result = synchronizer.sync(SISWA)

    columns = SqlSchemaInspector(destination_executor).get_columns("tabel_siswa")
    assert columns[-2:] == ["is_locally_edited", "last_local_sync"]
    assert result.inserted == 3


def test_ensure_sync_columns_is_repeatable(synchronizer, destination_executor) -> None:
    destination_executor.execute("CREATE TABLE tabel_siswa (id INTEGER PRIMARY KEY)")

    synchronizer.ensure_sync_columns("tabel_siswa")
    synchronizer.ensure_sync_columns("tabel_siswa")

    assert SqlSchemaInspector(destination_executor).get_columns("tabel_siswa") == [
        "id",
        "is_locally_edited",
        "last_local_sync",
    ]


def test_primary_key_is_inferred_from_sample_row(synchronizer, source_executor) -> None:
    source_executor.execute("CREATE TABLE tabel_siswa_pelengkap (nis TEXT, nama_ayah TEXT)")
    descriptor = TableDescriptor("main", "tabel_siswa_pelengkap")

    assert synchronizer.resolve_primary_key(descriptor, {"nis": "1001", "nama_ayah": "Pak Budi"}) == "nis"
    assert synchronizer.resolve_primary_key(descriptor, {"nama_ayah": "Pak Budi"}) == "id"


def test_selective_merge_skips_rows_without_key(synchronizer, source_executor, destination_executor) -> None:
    source_executor.execute("CREATE TABLE tabel_siswa (peserta_didik_id TEXT PRIMARY KEY, nm_siswa TEXT)")
    source_executor.execute_many("INSERT INTO tabel_siswa VALUES (?, ?)", [("S1", "Budi"), ("", "Tanpa ID")])

    result = synchronizer.sync(SISWA)

    assert (result.inserted, result.skipped) == (1, 1)
    assert destination_executor.fetch_all("SELECT peserta_didik_id FROM tabel_siswa") == [{"peserta_didik_id": "S1"}]


def test_synchronizer_reads_catalogs_through_injected_inspector(source_executor, destination_executor) -> None:
    inspected: list[str] = []

    class RecordingInspector(SqlSchemaInspector):
        def __init__(self, executor) -> None:
            super().__init__(executor)
            inspected.append(executor.name)

    _seed_kelas(source_executor, [("R1", "X-1")])
    synchronizer = TableSynchronizer(source_executor, destination_executor, inspector_factory=RecordingInspector)

    result = synchronizer.sync(KELAS)

    assert result.records == 1
    assert inspected == ["source", "destination"]


def test_executor_and_inspector_implement_ports() -> None:
    assert QueryExecutor in SqlAlchemyQueryExecutor.__mro__
    assert SchemaInspector in SqlSchemaInspector.__mro__
