from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from rapor.application.use_cases.leger import LegerService
from rapor.application.use_cases.report_cards import ReportCardService
from rapor.application.use_cases.report_supplements import ReportSupplementService
from rapor.application.use_cases.sync_tables import SyncSessionOrchestrator
from rapor.bootstrap.settings import LocalDatabaseSettings, Settings
from rapor.domain.ports import MarginSettingsRepository, QueryExecutor
from rapor.infrastructure.db import build_local_database_url
from rapor.infrastructure.query_executor import SqlAlchemyQueryExecutor
from rapor.infrastructure.repos_rapor import SqlMarginSettingsRepository, SqlReportRepository
from rapor.pdf.fonts import register_dejavu_fonts

SourceFactory = Callable[[], QueryExecutor]


def local_source_factory() -> QueryExecutor:
    """Opens the e-Rapor source pool; settings are read per session so a bad port surfaces as a sync error."""

    return SqlAlchemyQueryExecutor.from_url(build_local_database_url(LocalDatabaseSettings.from_env()), name="source")


@dataclass
class AppContainer:
    settings: Settings
    destination: QueryExecutor
    source_factory: SourceFactory
    report_cards: ReportCardService
    supplements: ReportSupplementService
    leger: LegerService
    margin_settings: MarginSettingsRepository

    def sync_orchestrator(self) -> SyncSessionOrchestrator:
        return SyncSessionOrchestrator(self.source_factory, self.destination)


def build_container(
    settings: Settings,
    *,
    destination: QueryExecutor | None = None,
    source_factory: SourceFactory = local_source_factory,
) -> AppContainer:
    destination = destination or SqlAlchemyQueryExecutor.from_url(settings.database_url, name="destination")
    register_dejavu_fonts(settings.font_dir)
    report_repository = SqlReportRepository(destination)
    return AppContainer(
        settings=settings,
        destination=destination,
        source_factory=source_factory,
        report_cards=ReportCardService(report_repository, settings.semester_id),
        supplements=ReportSupplementService(report_repository),
        leger=LegerService(report_repository, settings.semester_id),
        margin_settings=SqlMarginSettingsRepository(destination),
    )
