from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from time import perf_counter

from rapor.application.use_cases.sync_tables.table_sync import TableSynchronizer
from rapor.core.errors import ConfigurationError, ConnectivityError
from rapor.core.metrics import MetricsRegistry, metrics_registry
from rapor.core.observability import OperationContext, generate_correlation_id, generate_run_id, log_event
from rapor.core.operational_logging import log_operational_error
from rapor.domain.ports import QueryExecutor
from rapor.domain.sync_models import (
    CompleteEvent,
    DoneEvent,
    ErrorEvent,
    ProgressEvent,
    SyncProgressEvent,
    SyncSessionSummary,
    TableDescriptor,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

CONNECTION_FAILED_MESSAGE = "Gagal terhubung ke database lokal e-Rapor"

SourceFactory = Callable[[], QueryExecutor]
SynchronizerFactory = Callable[[QueryExecutor, QueryExecutor], TableSynchronizer]


class SyncSessionOrchestrator:
    """Runs one sync session over the selected tables, one table at a time.

    The source pool lives exactly as long as the event stream: it is created
    when iteration starts and disposed on every way out, including a consumer
    that stops iterating early.
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        destination: QueryExecutor,
        *,
        synchronizer_factory: SynchronizerFactory = TableSynchronizer,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._source_factory = source_factory
        self._destination = destination
        self._synchronizer_factory = synchronizer_factory
        self._metrics = metrics or metrics_registry

    def run(self, tables: Sequence[TableDescriptor]) -> Iterator[SyncProgressEvent]:
        correlation_id = generate_correlation_id()
        run_id = generate_run_id()
        source: QueryExecutor | None = None
        try:
            try:
                source = self._source_factory()
                source.ping()
            except ConfigurationError as exc:
                log_operational_error("Sync configuration rejected", exc=exc, extra={"correlation_id": correlation_id})
                yield ErrorEvent(str(exc))
                return
            except ConnectivityError as exc:
                log_operational_error("Source database unreachable", exc=exc, extra={"correlation_id": correlation_id})
                yield ErrorEvent(f"{CONNECTION_FAILED_MESSAGE}: {exc}")
                return

            log_event(
                logger,
                "sync_session_started",
                {"run_id": run_id, "tables": [t.qualified_name for t in tables]},
                correlation_id,
            )
            synchronizer = self._synchronizer_factory(source, self._destination)
            total_records = 0
            for descriptor in tables:
                yield ProgressEvent(descriptor.schema_name, descriptor.table_name)
                outcome = self._sync_one(synchronizer, descriptor, correlation_id, run_id)
                if isinstance(outcome, CompleteEvent):
                    total_records += outcome.records
                yield outcome

            self._dispose(source)
            source = None
            log_event(
                logger,
                "sync_session_finished",
                {"run_id": run_id, "tables_synced": len(tables), "total_records": total_records},
                correlation_id,
            )
            self._metrics.increment("sync.sessions")
            yield DoneEvent(tables_synced=len(tables), total_records=total_records, timestamp=utc_now_iso())
        except Exception as exc:  # noqa: BLE001
            log_operational_error(
                "Sync session aborted", exc=exc, extra={"correlation_id": correlation_id, "run_id": run_id}
            )
            if source is not None:
                self._dispose(source)
                source = None
            yield ErrorEvent(str(exc))
        finally:
            if source is not None:
                self._dispose(source)

    def run_to_summary(self, tables: Sequence[TableDescriptor]) -> SyncSessionSummary:
        started_at = utc_now_iso()
        errors: list[str] = []
        failed: list[str] = []
        tables_synced = 0
        total_records = 0
        finished_at = ""
        for event in self.run(tables):
            if isinstance(event, ErrorEvent):
                errors.append(event.message)
                if event.schema and event.table:
                    failed.append(f"{event.schema}.{event.table}")
            elif isinstance(event, DoneEvent):
                tables_synced = event.tables_synced
                total_records = event.total_records
                finished_at = event.timestamp
        return SyncSessionSummary(
            tables_synced=tables_synced,
            total_records=total_records,
            failed_tables=tuple(failed),
            errors=tuple(errors),
            started_at=started_at,
            finished_at=finished_at or utc_now_iso(),
        )

    def _sync_one(
        self,
        synchronizer: TableSynchronizer,
        descriptor: TableDescriptor,
        correlation_id: str,
        run_id: str,
    ) -> CompleteEvent | ErrorEvent:
        started = perf_counter()
        try:
            with OperationContext("sync_table", correlation_id=correlation_id, run_id=run_id):
                result = synchronizer.sync(descriptor)
        except Exception as exc:  # noqa: BLE001
            message = f"Error syncing {descriptor.schema_name}.{descriptor.table_name}: {exc}"
            log_operational_error(
                message,
                exc=exc,
                extra={"correlation_id": correlation_id, "run_id": run_id, "table": descriptor.qualified_name},
            )
            self._metrics.increment("sync.table_errors")
            return ErrorEvent(message, schema=descriptor.schema_name, table=descriptor.table_name)
        finally:
            self._metrics.record_timing("latency.sync_table_ms", (perf_counter() - started) * 1000)

        self._metrics.increment("sync.tables_synced")
        logger.info(
            "Table synced",
            extra={
                "correlation_id": correlation_id,
                "run_id": run_id,
                "extra": {"table": descriptor.qualified_name, "policy": result.policy.value, "records": result.records},
            },
        )
        return CompleteEvent(descriptor.schema_name, descriptor.table_name, result.records)

    def _dispose(self, source: QueryExecutor) -> None:
        try:
            source.dispose()
        except Exception as exc:  # noqa: BLE001
            log_operational_error("Error closing source connection pool", exc=exc)
