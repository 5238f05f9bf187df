from __future__ import annotations

from rapor.domain.sync_models import SELECTIVE_MERGE_TABLES, SyncPolicy


def classify(table_name: str) -> SyncPolicy:
    """Student tables are merged record by record; every other table is replaced wholesale."""

    if table_name in SELECTIVE_MERGE_TABLES:
        return SyncPolicy.SELECTIVE_MERGE
    return SyncPolicy.FORCED_REPLACE
