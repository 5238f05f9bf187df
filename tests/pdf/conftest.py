from __future__ import annotations

import pytest

from rapor.domain.models import (
    Attendance,
    ExtracurricularEntry,
    ReportCardUnit,
    SchoolInfo,
    SemesterInfo,
    SignatureInfo,
    Student,
    SubjectGrade,
    SubjectGroup,
)


@pytest.fixture
def make_unit():
    def _factory(
        *,
        peserta_didik_id: str = "S1",
        nama: str = "Budi Santoso",
        subjects: int = 0,
        capaian: str = "Menunjukkan penguasaan yang baik.",
    ) -> ReportCardUnit:
        grades = tuple(
            SubjectGrade(f"M{index}", f"Mata Pelajaran {index}", 80 + index % 10, capaian)
            for index in range(1, subjects + 1)
        )
        return ReportCardUnit(
            student=Student(peserta_didik_id, nama, nis="1001", nisn="0051", nama_kelas="X-1", tingkat=10),
            school=SchoolInfo("SMA Negeri 1 Contoh", alamat="Jl. Merdeka 1", nama_kepala_sekolah="Dra. Siti Aminah"),
            semester=SemesterInfo("20251", "2025/2026 Ganjil", "2025/2026"),
            groups=(SubjectGroup("Kelompok A", grades),) if grades else (),
            kokurikuler="Aktif dalam projek kearifan lokal.",
            extracurriculars=(ExtracurricularEntry("Pramuka", "Sangat baik", "4"),),
            attendance=Attendance(sakit=2, izin=1),
            catatan_wali="Pertahankan prestasi.",
            signature=SignatureInfo(
                tempat="Bandung",
                tanggal="20 Desember 2025",
                nama_wali_kelas="Ahmad Fauzi, S.Pd.",
                nip_wali_kelas="198502022010011002",
                nama_kepala_sekolah="Dra. Siti Aminah",
                nama_sekolah="SMA Negeri 1 Contoh",
            ),
        )

    return _factory
