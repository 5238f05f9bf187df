from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from rapor.core.errors import NotFoundError
from rapor.domain.models import UNGRADED, ReportCardUnit, Subject, SubjectGrade, SubjectGroup
from rapor.domain.ports import ReportRepository

logger = logging.getLogger(__name__)

DEFAULT_TINGKAT = 10


def group_subjects(
    subjects: Sequence[Subject],
    grades: Mapping[str, float],
    descriptions: Mapping[str, str],
) -> tuple[SubjectGroup, ...]:
    """Subjects in curriculum order, grouped by kelompok; ungraded subjects are left out."""

    grouped: dict[str, list[SubjectGrade]] = {}
    for subject in subjects:
        nilai = grades.get(subject.mata_pelajaran_id)
        if nilai is None or nilai == UNGRADED:
            continue
        grouped.setdefault(subject.nama_kelompok, []).append(
            SubjectGrade(
                mata_pelajaran_id=subject.mata_pelajaran_id,
                nama=subject.nama,
                nilai_akhir=nilai,
                capaian_kompetensi=descriptions.get(subject.mata_pelajaran_id, ""),
            )
        )
    return tuple(SubjectGroup(nama, tuple(items)) for nama, items in grouped.items())


class ReportCardService:
    def __init__(self, repository: ReportRepository, semester_id: str) -> None:
        self._repository = repository
        self._semester_id = semester_id

    def build_unit(self, peserta_didik_id: str) -> ReportCardUnit:
        student = self._repository.get_student(peserta_didik_id)
        if student is None:
            raise NotFoundError(f"Siswa {peserta_didik_id} tidak ditemukan")
        repo, semester_id = self._repository, self._semester_id
        groups = group_subjects(
            repo.list_subjects(student.tingkat or DEFAULT_TINGKAT),
            repo.get_final_grades(peserta_didik_id, semester_id),
            repo.get_competency_descriptions(peserta_didik_id, semester_id),
        )
        unit = ReportCardUnit(
            student=student,
            school=repo.get_school(),
            semester=repo.get_semester(semester_id),
            groups=groups,
            kokurikuler=repo.get_kokurikuler(peserta_didik_id, semester_id),
            extracurriculars=tuple(repo.list_extracurriculars(peserta_didik_id, semester_id)),
            attendance=repo.get_attendance(peserta_didik_id, semester_id),
            catatan_wali=repo.get_homeroom_note(peserta_didik_id),
            signature=repo.get_signature(peserta_didik_id, semester_id),
        )
        logger.debug(
            "Report card data loaded",
            extra={"extra": {"peserta_didik_id": peserta_didik_id, "subjects": sum(len(g.subjects) for g in groups)}},
        )
        return unit

    def build_class_units(self, rombongan_belajar_id: str) -> list[ReportCardUnit]:
        students = self._repository.list_students_by_class(rombongan_belajar_id)
        if not students:
            raise NotFoundError(f"Kelas {rombongan_belajar_id} tidak memiliki siswa")
        return [self.build_unit(student.peserta_didik_id) for student in students]
