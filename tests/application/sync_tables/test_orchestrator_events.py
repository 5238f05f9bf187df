from __future__ import annotations

import logging

import pytest

from rapor.application.use_cases.sync_tables.orchestrator import CONNECTION_FAILED_MESSAGE, SyncSessionOrchestrator
from rapor.application.use_cases.sync_tables.table_sync import TableSynchronizer
from rapor.core.errors import ConfigurationError, ConnectivityError
from rapor.core.metrics import MetricsRegistry
from rapor.core.observability import get_run_id
from rapor.domain.sync_models import CompleteEvent, DoneEvent, ErrorEvent, ProgressEvent, TableDescriptor
from rapor.infrastructure.query_executor import SqlAlchemyQueryExecutor

TABLES = (
    TableDescriptor("main", "tabel_kelas"),
    TableDescriptor("main", "tabel_tidak_ada"),
    TableDescriptor("main", "tabel_siswa"),
)


class CountingExecutor(SqlAlchemyQueryExecutor):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.dispose_calls = 0

    def dispose(self) -> None:
        self.dispose_calls += 1
        super().dispose()


class UnreachableSource:
    def __init__(self) -> None:
        self.dispose_calls = 0

    def ping(self) -> None:
        raise ConnectivityError("connection refused")

    def dispose(self) -> None:
        self.dispose_calls += 1


@pytest.fixture
def seeded_source(source_executor) -> CountingExecutor:
    source_executor.execute("CREATE TABLE tabel_kelas (rombongan_belajar_id TEXT PRIMARY KEY, nm_kelas TEXT)")
    source_executor.execute_many("INSERT INTO tabel_kelas VALUES (?, ?)", [("R1", "X-1"), ("R2", "X-2")])
    source_executor.execute("CREATE TABLE tabel_siswa (peserta_didik_id TEXT PRIMARY KEY, nm_siswa TEXT)")
    source_executor.execute_many("INSERT INTO tabel_siswa VALUES (?, ?)", [("S1", "Budi"), ("S2", "Ani"), ("S3", "Citra")])
    return CountingExecutor(source_executor.engine, name="source")


def test_events_are_ordered_and_errors_are_isolated(seeded_source, destination_executor) -> None:
    metrics = MetricsRegistry()
    orchestrator = SyncSessionOrchestrator(lambda: seeded_source, destination_executor, metrics=metrics)

    events = list(orchestrator.run(TABLES))

    assert [type(event) for event in events] == [
        ProgressEvent,
        CompleteEvent,
        ProgressEvent,
        ErrorEvent,
        ProgressEvent,
        CompleteEvent,
        DoneEvent,
    ]
    assert [event.table for event in events[:-1]] == [
        "tabel_kelas",
        "tabel_kelas",
        "tabel_tidak_ada",
        "tabel_tidak_ada",
        "tabel_siswa",
        "tabel_siswa",
    ]
    assert events[3].message.startswith("Error syncing main.tabel_tidak_ada:")
    done = events[-1]
    assert done.tables_synced == 3
    assert done.total_records == 5
    assert seeded_source.dispose_calls == 1
    assert metrics.counter("sync.tables_synced") == 2
    assert metrics.counter("sync.table_errors") == 1
    assert metrics.snapshot()["timings_ms"]["latency.sync_table_ms"]["count"] == 3


def test_event_payloads_match_wire_format(seeded_source, destination_executor) -> None:
    orchestrator = SyncSessionOrchestrator(lambda: seeded_source, destination_executor, metrics=MetricsRegistry())

    payloads = [event.to_dict() for event in orchestrator.run(TABLES[:1])]

    assert payloads[0] == {"type": "progress", "schema": "main", "table": "tabel_kelas", "records": 0}
    assert payloads[1] == {"type": "complete", "schema": "main", "table": "tabel_kelas", "records": 2}
    assert payloads[2]["type"] == "done"
    assert payloads[2]["tablesSynced"] == 1
    assert payloads[2]["totalRecords"] == 2
    assert payloads[2]["timestamp"].endswith("Z")


def test_pool_is_disposed_when_consumer_stops_early(seeded_source, destination_executor) -> None:
    orchestrator = SyncSessionOrchestrator(lambda: seeded_source, destination_executor, metrics=MetricsRegistry())

    events = orchestrator.run(TABLES)
    assert isinstance(next(events), ProgressEvent)
    events.close()

    assert seeded_source.dispose_calls == 1


def test_unreachable_source_yields_single_error(destination_executor) -> None:
    source = UnreachableSource()
    orchestrator = SyncSessionOrchestrator(lambda: source, destination_executor, metrics=MetricsRegistry())

    events = list(orchestrator.run(TABLES))

    assert len(events) == 1
    assert isinstance(events[0], ErrorEvent)
    assert events[0].message == f"{CONNECTION_FAILED_MESSAGE}: connection refused"
    assert source.dispose_calls == 1


def test_configuration_error_yields_single_error(destination_executor) -> None:
    def _factory():
        raise ConfigurationError("Invalid port configuration for local database")

    events = list(SyncSessionOrchestrator(_factory, destination_executor, metrics=MetricsRegistry()).run(TABLES))

    assert [event.to_dict() for event in events] == [
        {"type": "error", "message": "Invalid port configuration for local database"}
    ]


def test_empty_selection_still_reports_done(seeded_source, destination_executor) -> None:
    events = list(SyncSessionOrchestrator(lambda: seeded_source, destination_executor, metrics=MetricsRegistry()).run(()))

    assert len(events) == 1
    assert isinstance(events[0], DoneEvent)
    assert events[0].tables_synced == 0


def test_summary_collects_failed_tables(seeded_source, destination_executor) -> None:
    orchestrator = SyncSessionOrchestrator(lambda: seeded_source, destination_executor, metrics=MetricsRegistry())

    summary = orchestrator.run_to_summary(TABLES)

    assert not summary.success
    assert summary.tables_synced == 3
    assert summary.total_records == 5
    assert summary.failed_tables == ("main.tabel_tidak_ada",)
    payload = summary.to_dict()
    assert payload["success"] is False
    assert payload["failedTables"] == ["main.tabel_tidak_ada"]


def test_session_run_id_tags_session_and_table_logs(seeded_source, destination_executor, caplog) -> None:
    seen_run_ids: list[str | None] = []

    class RunAwareSynchronizer(TableSynchronizer):
        def sync(self, descriptor):
            seen_run_ids.append(get_run_id())
            return super().sync(descriptor)

    orchestrator = SyncSessionOrchestrator(
        lambda: seeded_source,
        destination_executor,
        synchronizer_factory=RunAwareSynchronizer,
        metrics=MetricsRegistry(),
    )
    with caplog.at_level(logging.INFO, logger="rapor.application.use_cases.sync_tables.orchestrator"):
        list(orchestrator.run(TABLES[:1]))

    started = next(record for record in caplog.records if record.getMessage() == "sync_session_started")
    finished = next(record for record in caplog.records if record.getMessage() == "sync_session_finished")
    table_synced = next(record for record in caplog.records if record.getMessage() == "Table synced")
    assert started.run_id.startswith("SYNC-")
    assert finished.run_id == table_synced.run_id == started.run_id
    assert seen_run_ids == [started.run_id]
    assert get_run_id() is None
