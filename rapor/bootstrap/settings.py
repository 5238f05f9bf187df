from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from rapor.core.errors import ConfigurationError

DEFAULT_SEMESTER_ID = "20251"


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def resolve_log_dir() -> Path:
    candidates: list[Path] = []
    env_dir = os.environ.get("RAPOR_LOG_DIR")
    if env_dir:
        candidates.append(Path(env_dir))
    candidates.append(project_root() / "logs")
    candidates.append(Path(tempfile.gettempdir()) / "RaporSekolah" / "logs")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            test_file = candidate / "_write_test.tmp"
            test_file.write_text("ok", encoding="utf-8")
            test_file.unlink(missing_ok=True)
            return candidate
        except OSError:
            continue

    fallback = project_root()
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


@dataclass(frozen=True)
class LocalDatabaseSettings:
    """Connection parameters of the on-premise e-Rapor database (sync source)."""

    host: str = "localhost"
    port: int = 5432
    database: str = "erapor"
    username: str = "postgres"
    password: str = ""
    url: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "LocalDatabaseSettings":
        env = os.environ if env is None else env
        raw_port = env.get("LOCAL_DB_PORT") or "5432"
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ConfigurationError("Invalid port configuration for local database") from exc
        if not 0 < port < 65536:
            raise ConfigurationError("Invalid port configuration for local database")
        return cls(
            host=env.get("LOCAL_DB_HOST") or "localhost",
            port=port,
            database=env.get("LOCAL_DB_DATABASE") or "erapor",
            username=env.get("LOCAL_DB_USERNAME") or "postgres",
            password=env.get("LOCAL_DB_PASSWORD") or "",
            url=env.get("LOCAL_DB_URL") or None,
        )


@dataclass(frozen=True)
class Settings:
    database_url: str
    semester_id: str = DEFAULT_SEMESTER_ID
    font_dir: Path | None = None
    secret_key: str = "dev"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        database_url = env.get("DATABASE_URL")
        if not database_url:
            raise ConfigurationError("DATABASE_URL is not configured")
        font_dir = env.get("RAPOR_FONT_DIR")
        return cls(
            database_url=database_url,
            semester_id=env.get("RAPOR_SEMESTER_ID") or DEFAULT_SEMESTER_ID,
            font_dir=Path(font_dir) if font_dir else None,
            secret_key=env.get("SECRET_KEY") or "dev",
        )
