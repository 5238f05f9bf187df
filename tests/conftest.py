from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from rapor.infrastructure.query_executor import SqlAlchemyQueryExecutor
from tests.erapor_fixture import seed_erapor


@pytest.fixture
def make_executor(tmp_path: Path):
    created: list[SqlAlchemyQueryExecutor] = []

    def _factory(name: str = "db") -> SqlAlchemyQueryExecutor:
        executor = SqlAlchemyQueryExecutor.from_url(
            f"sqlite:///{tmp_path / f'{name}.db'}",
            name=name,
            initial_delay_seconds=0,
        )
        created.append(executor)
        return executor

    yield _factory
    for executor in created:
        executor.dispose()


@pytest.fixture
def source_executor(make_executor) -> SqlAlchemyQueryExecutor:
    return make_executor("source")


@pytest.fixture
def destination_executor(make_executor) -> SqlAlchemyQueryExecutor:
    return make_executor("destination")


@pytest.fixture
def erapor_executor(make_executor) -> SqlAlchemyQueryExecutor:
    executor = make_executor("erapor")
    seed_erapor(executor)
    return executor


@pytest.fixture
def restore_root_handlers():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
