from __future__ import annotations

from rapor.core.errors import NotFoundError
from rapor.domain.models import SupplementUnit
from rapor.domain.ports import ReportRepository


class ReportSupplementService:
    """Loads the identity data printed in front of and behind the report card pages."""

    def __init__(self, repository: ReportRepository) -> None:
        self._repository = repository

    def build_unit(self, peserta_didik_id: str) -> SupplementUnit:
        student = self._repository.get_student_identity(peserta_didik_id)
        if student is None:
            raise NotFoundError(f"Siswa {peserta_didik_id} tidak ditemukan")
        return SupplementUnit(student=student, school=self._repository.get_school_profile())

    def build_class_units(self, rombongan_belajar_id: str) -> list[SupplementUnit]:
        students = self._repository.list_students_by_class(rombongan_belajar_id)
        if not students:
            raise NotFoundError(f"Kelas {rombongan_belajar_id} tidak memiliki siswa")
        return [self.build_unit(student.peserta_didik_id) for student in students]

    def class_name(self, rombongan_belajar_id: str) -> str:
        kelas = self._repository.get_class(rombongan_belajar_id)
        return kelas.nama_kelas if kelas and kelas.nama_kelas else rombongan_belajar_id
