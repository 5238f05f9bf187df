from __future__ import annotations

import json
from collections.abc import Iterable, Iterator

from rapor.domain.sync_models import SyncProgressEvent, SyncSessionSummary

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


def encode_sse(event: SyncProgressEvent) -> str:
    return f"data: {json.dumps(event.to_dict(), ensure_ascii=False)}\n\n"


def stream_sse(events: Iterable[SyncProgressEvent]) -> Iterator[str]:
    for event in events:
        yield encode_sse(event)


def render_summary_json(summary: SyncSessionSummary) -> str:
    return json.dumps(summary.to_dict(), ensure_ascii=False, sort_keys=True)


def render_summary_text(summary: SyncSessionSummary) -> str:
    lines = [
        f"Tables synced: {summary.tables_synced}",
        f"Total records: {summary.total_records}",
    ]
    lines.extend(f"- {error}" for error in summary.errors)
    return "\n".join(lines)
