from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError

from rapor.bootstrap.settings import LocalDatabaseSettings
from rapor.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 30000
DEFAULT_POOL_SIZE = 5


def configure_sqlite_connection(dbapi_connection: Any, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    finally:
        cursor.close()


def create_db_engine(url: str | URL, *, pool_size: int = DEFAULT_POOL_SIZE) -> Engine:
    try:
        parsed = make_url(url)
    except ArgumentError as exc:
        raise ConfigurationError(f"Invalid database URL: {exc}") from exc

    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if parsed.get_backend_name() != "sqlite":
        kwargs["pool_size"] = pool_size
    engine = create_engine(parsed, **kwargs)

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", lambda dbapi_connection, _record: configure_sqlite_connection(dbapi_connection))
    logger.debug("Engine created", extra={"extra": {"url": parsed.render_as_string(hide_password=True)}})
    return engine


def build_local_database_url(settings: LocalDatabaseSettings) -> URL:
    if settings.url:
        try:
            return make_url(settings.url)
        except ArgumentError as exc:
            raise ConfigurationError(f"Invalid LOCAL_DB_URL: {exc}") from exc
    return URL.create(
        "postgresql+psycopg2",
        username=settings.username,
        password=settings.password or None,
        host=settings.host,
        port=settings.port,
        database=settings.database,
    )
