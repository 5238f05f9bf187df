from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from rapor.domain.layout_models import MarginSettings
from rapor.domain.models import (
    Attendance,
    ClassInfo,
    ExtracurricularEntry,
    ExtracurricularGrade,
    SchoolInfo,
    SchoolProfile,
    SemesterInfo,
    SignatureInfo,
    Student,
    StudentIdentity,
    Subject,
)
from rapor.domain.sync_models import ColumnDefinition


class QueryExecutor(Protocol):
    @property
    def dialect(self) -> str:
        ...

    @property
    def placeholder(self) -> str:
        ...

    def quote(self, identifier: str) -> str:
        ...

    def qualified(self, table: str, schema: str | None = None) -> str:
        ...

    def placeholders(self, count: int) -> str:
        ...

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        ...

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        ...

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        ...

    def ping(self) -> None:
        ...

    def dispose(self) -> None:
        ...


class SchemaInspector(Protocol):
    def get_primary_key(self, table: str, schema: str | None = None) -> str:
        ...

    def find_primary_key(self, table: str, schema: str | None = None) -> str | None:
        ...

    def get_columns(self, table: str, schema: str | None = None) -> list[str]:
        ...

    def get_column_definitions(self, table: str, schema: str | None = None) -> list[ColumnDefinition]:
        ...

    def has_column(self, table: str, column: str, schema: str | None = None) -> bool:
        ...

    def table_exists(self, table: str, schema: str | None = None) -> bool:
        ...

    def list_schemas(self) -> list[str]:
        ...

    def list_tables(self, schema: str | None = None) -> list[str]:
        ...


class ReportRepository(Protocol):
    def get_student(self, peserta_didik_id: str) -> Student | None:
        ...

    def list_students_by_class(self, rombongan_belajar_id: str) -> list[Student]:
        ...

    def get_class(self, rombongan_belajar_id: str) -> ClassInfo | None:
        ...

    def get_school(self) -> SchoolInfo:
        ...

    def get_semester(self, semester_id: str) -> SemesterInfo:
        ...

    def list_subjects(self, tingkat: int) -> list[Subject]:
        ...

    def get_final_grades(self, peserta_didik_id: str, semester_id: str) -> dict[str, float]:
        ...

    def get_competency_descriptions(self, peserta_didik_id: str, semester_id: str) -> dict[str, str]:
        ...

    def get_kokurikuler(self, peserta_didik_id: str, semester_id: str) -> str:
        ...

    def list_extracurriculars(self, peserta_didik_id: str, semester_id: str) -> list[ExtracurricularEntry]:
        ...

    def get_attendance(self, peserta_didik_id: str, semester_id: str) -> Attendance:
        ...

    def get_homeroom_note(self, peserta_didik_id: str) -> str:
        ...

    def get_signature(self, peserta_didik_id: str, semester_id: str) -> SignatureInfo:
        ...

    def get_class_grades(self, rombongan_belajar_id: str, semester_id: str) -> dict[str, dict[str, float]]:
        ...

    def get_class_attendance(self, rombongan_belajar_id: str, semester_id: str) -> dict[str, Attendance]:
        ...

    def list_class_extracurriculars(self, rombongan_belajar_id: str, semester_id: str) -> list[ExtracurricularGrade]:
        ...

    def get_student_identity(self, peserta_didik_id: str) -> StudentIdentity | None:
        ...

    def get_school_profile(self) -> SchoolProfile:
        ...


class MarginSettingsRepository(Protocol):
    def get(self, ptk_id: str) -> MarginSettings:
        ...

    def save(self, ptk_id: str, margins: MarginSettings) -> None:
        ...
