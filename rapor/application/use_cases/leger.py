from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from rapor.core.errors import NotFoundError
from rapor.domain.models import (
    Attendance,
    ExtracurricularGrade,
    LegerData,
    LegerExtracurricular,
    LegerStudentRow,
    Student,
    Subject,
)
from rapor.domain.ports import ReportRepository

logger = logging.getLogger(__name__)

EXTRACURRICULAR_LABELS = {4: "SB", 3: "B", 2: "C", 1: "K"}


def extracurricular_label(nilai: int | None) -> str:
    return EXTRACURRICULAR_LABELS.get(nilai, "") if nilai is not None else ""


def dense_ranks(totals: Sequence[float]) -> list[int]:
    """1-based dense ranking, highest total first; equal totals share a rank."""

    distinct = sorted(set(totals), reverse=True)
    position = {total: index for index, total in enumerate(distinct, start=1)}
    return [position[total] for total in totals]


def build_rows(
    students: Sequence[Student],
    subjects: Sequence[Subject],
    grades: Mapping[str, Mapping[str, float]],
    attendance: Mapping[str, Attendance],
    extracurriculars: Iterable[ExtracurricularGrade],
) -> list[LegerStudentRow]:
    ekskul_values: dict[str, dict[str, str]] = {}
    for entry in extracurriculars:
        ekskul_values.setdefault(entry.peserta_didik_id, {})[entry.ekskul_id] = extracurricular_label(entry.nilai)

    partial = []
    for student in students:
        student_grades = grades.get(student.peserta_didik_id, {})
        present = {
            subject.mata_pelajaran_id: student_grades[subject.mata_pelajaran_id]
            for subject in subjects
            if student_grades.get(subject.mata_pelajaran_id) is not None
        }
        total = sum(present.values())
        average = total / len(present) if present else 0.0
        partial.append((student, present, total, average))

    ranks = dense_ranks([total for _, _, total, _ in partial])
    return [
        LegerStudentRow(
            student=student,
            grades=present,
            attendance=attendance.get(student.peserta_didik_id, Attendance()),
            extracurriculars=ekskul_values.get(student.peserta_didik_id, {}),
            total=total,
            average=average,
            rank=rank,
        )
        for (student, present, total, average), rank in zip(partial, ranks)
    ]


class LegerService:
    def __init__(self, repository: ReportRepository, semester_id: str) -> None:
        self._repository = repository
        self._semester_id = semester_id

    def build(self, rombongan_belajar_id: str) -> LegerData:
        repo = self._repository
        kelas = repo.get_class(rombongan_belajar_id)
        if kelas is None:
            raise NotFoundError(f"Kelas {rombongan_belajar_id} tidak ditemukan")
        students = repo.list_students_by_class(rombongan_belajar_id)
        subjects = repo.list_subjects(kelas.tingkat or 10)
        extracurriculars = repo.list_class_extracurriculars(rombongan_belajar_id, self._semester_id)

        ekskul_columns: dict[str, LegerExtracurricular] = {}
        for entry in extracurriculars:
            ekskul_columns.setdefault(entry.ekskul_id, LegerExtracurricular(entry.ekskul_id, entry.nama))

        rows = build_rows(
            students,
            subjects,
            repo.get_class_grades(rombongan_belajar_id, self._semester_id),
            repo.get_class_attendance(rombongan_belajar_id, self._semester_id),
            extracurriculars,
        )
        logger.info(
            "Leger built",
            extra={"extra": {"rombongan_belajar_id": rombongan_belajar_id, "students": len(rows), "subjects": len(subjects)}},
        )
        return LegerData(
            nama_kelas=kelas.nama_kelas,
            nama_sekolah=repo.get_school().nama,
            tahun_ajaran=repo.get_semester(self._semester_id).academic_year,
            subjects=tuple(subjects),
            extracurriculars=tuple(ekskul_columns.values()),
            rows=tuple(rows),
            nama_wali_kelas=kelas.nama_wali_kelas,
        )
