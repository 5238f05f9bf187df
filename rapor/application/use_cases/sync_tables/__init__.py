from rapor.application.use_cases.sync_tables.orchestrator import SyncSessionOrchestrator
from rapor.application.use_cases.sync_tables.policy import classify
from rapor.application.use_cases.sync_tables.request import SyncRequest, authorize_admin, parse_sync_request
from rapor.application.use_cases.sync_tables.table_sync import TableSynchronizer

__all__ = [
    "SyncRequest",
    "SyncSessionOrchestrator",
    "TableSynchronizer",
    "authorize_admin",
    "classify",
    "parse_sync_request",
]
