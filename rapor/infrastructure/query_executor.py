from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar

from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from rapor.core.errors import ConnectivityError, PersistenceError
from rapor.domain.ports import QueryExecutor
from rapor.infrastructure.db import create_db_engine

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

DEFAULT_RETRIES = 3
DEFAULT_INITIAL_DELAY_SECONDS = 1.0
_TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "etimedout",
    "could not connect",
    "connection refused",
    "server closed the connection",
    "database is locked",
)


def _error_message(error: SQLAlchemyError) -> str:
    original = getattr(error, "orig", None)
    if original is not None:
        return str(original).strip()
    return str(error).strip()


def _driver_params(params: Sequence[Any]) -> tuple[Any, ...] | None:
    values = tuple(params)
    return values or None


def is_transient_error(error: BaseException) -> bool:
    if not isinstance(error, DBAPIError):
        return False
    if error.connection_invalidated:
        return True
    message = _error_message(error).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class SqlAlchemyQueryExecutor(QueryExecutor):
    """Positional-parameter SQL over a SQLAlchemy engine.

    Statements go through ``exec_driver_sql`` so callers write the driver's own
    placeholder (``placeholder``) and rows come back as plain dicts in column
    order. Each write runs in its own ``engine.begin()`` block.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        name: str = "db",
        retries: int = DEFAULT_RETRIES,
        initial_delay_seconds: float = DEFAULT_INITIAL_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self.name = name
        self._retries = max(1, retries)
        self._initial_delay = initial_delay_seconds
        self._sleep = sleep

    @classmethod
    def from_url(cls, url: str | URL, *, name: str = "db", **kwargs: Any) -> "SqlAlchemyQueryExecutor":
        return cls(create_db_engine(url), name=name, **kwargs)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    @property
    def placeholder(self) -> str:
        return "?" if self._engine.dialect.paramstyle == "qmark" else "%s"

    def quote(self, identifier: str) -> str:
        return self._engine.dialect.identifier_preparer.quote_identifier(identifier)

    def qualified(self, table: str, schema: str | None = None) -> str:
        if schema:
            return f"{self.quote(schema)}.{self.quote(table)}"
        return self.quote(table)

    def placeholders(self, count: int) -> str:
        return ", ".join([self.placeholder] * count)

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        def _query() -> list[dict[str, Any]]:
            with self._engine.connect() as connection:
                result = connection.exec_driver_sql(sql, _driver_params(params))
                return [dict(row) for row in result.mappings()]

        return self._run(_query, sql)

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        def _query() -> dict[str, Any] | None:
            with self._engine.connect() as connection:
                row = connection.exec_driver_sql(sql, _driver_params(params)).mappings().first()
                return dict(row) if row is not None else None

        return self._run(_query, sql)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        def _write() -> int:
            with self._engine.begin() as connection:
                return connection.exec_driver_sql(sql, _driver_params(params)).rowcount

        return self._run(_write, sql)

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        batch = [tuple(row) for row in rows]
        if not batch:
            return 0

        def _write() -> int:
            with self._engine.begin() as connection:
                connection.exec_driver_sql(sql, batch)
            return len(batch)

        return self._run(_write, sql)

    def ping(self) -> None:
        try:
            self.fetch_one("SELECT 1")
        except PersistenceError as exc:
            raise ConnectivityError(str(exc)) from exc

    def dispose(self) -> None:
        self._engine.dispose()
        logger.debug("Connection pool disposed", extra={"extra": {"executor": self.name}})

    def _run(self, operation: Callable[[], _T], sql: str) -> _T:
        delay = self._initial_delay
        for attempt in range(1, self._retries + 1):
            try:
                return operation()
            except SQLAlchemyError as error:
                if attempt < self._retries and is_transient_error(error):
                    logger.warning(
                        "Transient error on %s (attempt=%s/%s); retrying in %.0fms",
                        self.name,
                        attempt,
                        self._retries,
                        delay * 1000,
                    )
                    self._sleep(delay)
                    delay *= 2
                    continue
                logger.debug("Statement failed on %s: %s", self.name, sql.strip().splitlines()[0] if sql.strip() else sql)
                raise PersistenceError(_error_message(error)) from error
        raise PersistenceError(f"{self.name}: retries exhausted")
