from __future__ import annotations

from contextlib import AbstractContextManager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
import uuid
from typing import Any

_CORRELATION_ID: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_RUN_ID: ContextVar[str | None] = ContextVar("run_id", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def generate_run_id() -> str:
    return f"SYNC-{uuid.uuid4().hex[:12].upper()}"


def get_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def get_run_id() -> str | None:
    return _RUN_ID.get()


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    return _CORRELATION_ID.set(correlation_id)


def set_run_id(run_id: str | None) -> Token[str | None]:
    return _RUN_ID.set(run_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    _CORRELATION_ID.reset(token)


def reset_run_id(token: Token[str | None]) -> None:
    _RUN_ID.reset(token)


class OperationContext(AbstractContextManager["OperationContext"]):
    """Scopes a correlation id to one operation (a sync run, a PDF render).

    Nested contexts reuse the outer correlation id so that every log line of
    one HTTP request shares it. The run id is inherited the same way unless
    one is given.
    """

    def __init__(
        self,
        operation_name: str,
        *,
        correlation_id: str | None = None,
        run_id: str | None = None,
    ) -> None:
        self.operation_name = operation_name
        self.correlation_id = correlation_id or get_correlation_id() or generate_correlation_id()
        self.run_id = run_id or get_run_id()
        self._correlation_token: Token[str | None] | None = None
        self._run_token: Token[str | None] | None = None

    def __enter__(self) -> "OperationContext":
        self._correlation_token = set_correlation_id(self.correlation_id)
        self._run_token = set_run_id(self.run_id)
        return self

    def __exit__(self, exc_type: object, exc: object, exc_tb: object) -> None:
        if self._run_token is not None:
            reset_run_id(self._run_token)
        if self._correlation_token is not None:
            reset_correlation_id(self._correlation_token)
        return None


def log_event(logger: Any, event_name: str, payload: dict[str, Any], correlation_id: str | None = None) -> dict[str, Any]:
    correlation_id = correlation_id or get_correlation_id()
    run_id = payload.get("run_id") or get_run_id()

    event = {
        "event": event_name,
        "correlation_id": correlation_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }
    logger.info(
        event_name,
        extra={
            "correlation_id": correlation_id,
            "run_id": run_id,
            "extra": event,
        },
    )
    return event
