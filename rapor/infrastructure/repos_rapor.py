from __future__ import annotations

import logging
from typing import Any

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
from rapor.domain.ports import MarginSettingsRepository, QueryExecutor, ReportRepository

logger = logging.getLogger(__name__)

DEFAULT_GROUP_NAME = "Lainnya"


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _int_or_zero(value: Any) -> int:
    return 0 if value is None else int(value)


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def row_to_student(row: dict[str, Any]) -> Student:
    return Student(
        peserta_didik_id=_text(row["peserta_didik_id"]),
        nama=_text(row.get("nm_siswa")),
        nis=_text(row.get("nis")),
        nisn=_text(row.get("nisn")),
        nama_kelas=_text(row.get("nm_kelas")),
        tingkat=_int_or_none(row.get("tingkat_pendidikan_id")),
    )


def row_to_attendance(row: dict[str, Any] | None) -> Attendance:
    if not row:
        return Attendance()
    return Attendance(
        sakit=_int_or_zero(row.get("sakit")),
        izin=_int_or_zero(row.get("izin")),
        alpha=_int_or_zero(row.get("tanpa_keterangan")),
    )


def row_to_student_identity(row: dict[str, Any]) -> StudentIdentity:
    return StudentIdentity(
        peserta_didik_id=_text(row["peserta_didik_id"]),
        nama=_text(row.get("nm_siswa")),
        nis=_text(row.get("nis")),
        nisn=_text(row.get("nisn")),
        tempat_lahir=_text(row.get("tempat_lahir")),
        tanggal_lahir=_text(row.get("tanggal_lahir")),
        jenis_kelamin=_text(row.get("jenis_kelamin")),
        agama=_text(row.get("agama")),
        status_dalam_keluarga=_text(row.get("status_dalam_kel")),
        anak_ke=_text(row.get("anak_ke")),
        alamat=_text(row.get("alamat_siswa")),
        telepon=_text(row.get("telepon_siswa")),
        sekolah_asal=_text(row.get("sekolah_asal")),
        diterima_kelas=_text(row.get("diterima_kelas")),
        diterima_tanggal=_text(row.get("diterima_tanggal")),
        nama_ayah=_text(row.get("nm_ayah")),
        nama_ibu=_text(row.get("nm_ibu")),
        alamat_orang_tua=_text(row.get("alamat_ortu")),
        telepon_orang_tua=_text(row.get("telepon_ortu")),
        pekerjaan_ayah=_text(row.get("pekerjaan_ayah")),
        pekerjaan_ibu=_text(row.get("pekerjaan_ibu")),
        nama_wali=_text(row.get("nm_wali")),
        pekerjaan_wali=_text(row.get("pekerjaan_wali")),
    )


class SqlReportRepository(ReportRepository):
    """Read side of the e-Rapor tables used by report cards and the class ledger."""

    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor
        self._ph = executor.placeholder

    def get_student(self, peserta_didik_id: str) -> Student | None:
        row = self._executor.fetch_one(
            f"""
            SELECT s.peserta_didik_id, s.nm_siswa, s.nis, s.nisn,
                   k.nm_kelas, k.tingkat_pendidikan_id
            FROM tabel_siswa s
            LEFT JOIN tabel_anggotakelas ak ON s.peserta_didik_id = ak.peserta_didik_id
            LEFT JOIN tabel_kelas k ON ak.rombongan_belajar_id = k.rombongan_belajar_id
            WHERE s.peserta_didik_id = {self._ph}
            ORDER BY COALESCE(k.jenis_rombel, 0) ASC
            LIMIT 1
            """,
            (peserta_didik_id,),
        )
        return row_to_student(row) if row else None

    def list_students_by_class(self, rombongan_belajar_id: str) -> list[Student]:
        rows = self._executor.fetch_all(
            f"""
            SELECT s.peserta_didik_id, s.nm_siswa, s.nis, s.nisn,
                   k.nm_kelas, k.tingkat_pendidikan_id
            FROM tabel_siswa s
            JOIN tabel_anggotakelas ak ON s.peserta_didik_id = ak.peserta_didik_id
            JOIN tabel_kelas k ON ak.rombongan_belajar_id = k.rombongan_belajar_id
            WHERE ak.rombongan_belajar_id = {self._ph}
            ORDER BY s.nm_siswa ASC
            """,
            (rombongan_belajar_id,),
        )
        return [row_to_student(row) for row in rows]

    def get_class(self, rombongan_belajar_id: str) -> ClassInfo | None:
        row = self._executor.fetch_one(
            f"""
            SELECT k.rombongan_belajar_id, k.nm_kelas, k.tingkat_pendidikan_id,
                   p.nama AS nama_wali_kelas, p.nip AS nip_wali_kelas
            FROM tabel_kelas k
            LEFT JOIN tabel_ptk p ON k.ptk_id = p.ptk_id
            WHERE k.rombongan_belajar_id = {self._ph}
            """,
            (rombongan_belajar_id,),
        )
        if row is None:
            return None
        return ClassInfo(
            rombongan_belajar_id=_text(row["rombongan_belajar_id"]),
            nama_kelas=_text(row.get("nm_kelas")),
            tingkat=_int_or_none(row.get("tingkat_pendidikan_id")),
            nama_wali_kelas=_text(row.get("nama_wali_kelas")),
            nip_wali_kelas=_text(row.get("nip_wali_kelas")),
        )

    def get_school(self) -> SchoolInfo:
        row = self._executor.fetch_one(
            "SELECT nama, alamat, kab_kota, nm_kepsek, nip_kepsek FROM tabel_sekolah LIMIT 1"
        )
        if row is None:
            logger.warning("tabel_sekolah is empty")
            return SchoolInfo(nama="")
        return SchoolInfo(
            nama=_text(row.get("nama")),
            alamat=_text(row.get("alamat")),
            kota=_text(row.get("kab_kota")),
            nama_kepala_sekolah=_text(row.get("nm_kepsek")),
            nip_kepala_sekolah=_text(row.get("nip_kepsek")),
        )

    def get_semester(self, semester_id: str) -> SemesterInfo:
        row = self._executor.fetch_one(
            f"SELECT semester_id, nama_semester FROM semester WHERE semester_id = {self._ph}",
            (semester_id,),
        )
        if row is None:
            return SemesterInfo(semester_id=semester_id)
        nama = _text(row.get("nama_semester"))
        tahun_ajaran = nama.split(" ")[0] if "/" in nama else ""
        return SemesterInfo(semester_id=semester_id, nama_semester=nama, tahun_ajaran=tahun_ajaran)

    def list_subjects(self, tingkat: int) -> list[Subject]:
        rows = self._executor.fetch_all(
            f"""
            SELECT m.mata_pelajaran_id, m.nm_lokal, tm.nm_ringkas,
                   COALESCE(k.nama, '{DEFAULT_GROUP_NAME}') AS nama_kelompok
            FROM tabel_map_mapelk2013 m
            LEFT JOIN ref_klp_mapel k ON m.klp_mpl = k.klp_id AND k.jenjang = 'SMA'
            LEFT JOIN tabel_mapel tm ON m.mata_pelajaran_id = tm.mata_pelajaran_id
            WHERE m.tingkat_pendidikan_id = {self._ph}
            ORDER BY m.klp_mpl, m.urut_rapor
            """,
            (tingkat,),
        )
        subjects: dict[str, Subject] = {}
        for row in rows:
            key = _text(row["mata_pelajaran_id"])
            if key in subjects:
                continue
            subjects[key] = Subject(
                mata_pelajaran_id=key,
                nama=_text(row.get("nm_lokal")),
                nama_ringkas=_text(row.get("nm_ringkas")),
                nama_kelompok=_text(row.get("nama_kelompok")) or DEFAULT_GROUP_NAME,
            )
        return list(subjects.values())

    def get_final_grades(self, peserta_didik_id: str, semester_id: str) -> dict[str, float]:
        # Per-subject classes (higher jenis_rombel) take precedence over the main class.
        rows = self._executor.fetch_all(
            f"""
            SELECT n.mata_pelajaran_id, n.nilai_peng
            FROM tabel_nilaiakhir n
            JOIN tabel_anggotakelas ak ON n.anggota_rombel_id = ak.anggota_rombel_id
            LEFT JOIN tabel_kelas k ON ak.rombongan_belajar_id = k.rombongan_belajar_id
            WHERE ak.peserta_didik_id = {self._ph} AND n.semester_id = {self._ph}
            ORDER BY n.mata_pelajaran_id, COALESCE(k.jenis_rombel, 0) DESC
            """,
            (peserta_didik_id, semester_id),
        )
        grades: dict[str, float] = {}
        for row in rows:
            key = _text(row["mata_pelajaran_id"])
            value = _float_or_none(row.get("nilai_peng"))
            if key not in grades and value is not None:
                grades[key] = value
        return grades

    def get_competency_descriptions(self, peserta_didik_id: str, semester_id: str) -> dict[str, str]:
        rows = self._executor.fetch_all(
            f"""
            SELECT mata_pelajaran_id, deskripsi_peng_m, deskripsi_ket_m
            FROM tabel_deskripsi
            WHERE peserta_didik_id = {self._ph} AND semester_id = {self._ph}
            """,
            (peserta_didik_id, semester_id),
        )
        return {
            _text(row["mata_pelajaran_id"]): "\n".join(
                part for part in (_text(row.get("deskripsi_peng_m")), _text(row.get("deskripsi_ket_m"))) if part
            )
            for row in rows
        }

    def get_kokurikuler(self, peserta_didik_id: str, semester_id: str) -> str:
        row = self._executor.fetch_one(
            f"""
            SELECT deskripsi FROM tabel_deskripsikurikuler
            WHERE peserta_didik_id = {self._ph} AND semester_id = {self._ph}
            LIMIT 1
            """,
            (peserta_didik_id, semester_id),
        )
        return _text(row.get("deskripsi")) if row else ""

    def list_extracurriculars(self, peserta_didik_id: str, semester_id: str) -> list[ExtracurricularEntry]:
        rows = self._executor.fetch_all(
            f"""
            SELECT re.nm_ekskul, ne.nilai_ekstra, ne.deskripsi
            FROM tabel_nilai_ekstra ne
            LEFT JOIN refekstra_kurikuler re ON ne.id_ekskul_baru = re.id_ekskul
            WHERE ne.peserta_didik_id = {self._ph} AND ne.semester_id = {self._ph}
              AND ne.deskripsi IS NOT NULL
            ORDER BY re.nm_ekskul
            """,
            (peserta_didik_id, semester_id),
        )
        return [
            ExtracurricularEntry(
                nama=_text(row.get("nm_ekskul")) or "N/A",
                keterangan=_text(row.get("deskripsi")),
                nilai=_text(row.get("nilai_ekstra")),
            )
            for row in rows
        ]

    def get_attendance(self, peserta_didik_id: str, semester_id: str) -> Attendance:
        row = self._executor.fetch_one(
            f"""
            SELECT h.sakit, h.izin, h.tanpa_keterangan
            FROM tabel_kehadiran h
            JOIN tabel_anggotakelas ak ON h.anggota_rombel_id = ak.anggota_rombel_id
            WHERE ak.peserta_didik_id = {self._ph} AND h.semester_id = {self._ph}
            LIMIT 1
            """,
            (peserta_didik_id, semester_id),
        )
        return row_to_attendance(row)

    def get_homeroom_note(self, peserta_didik_id: str) -> str:
        row = self._executor.fetch_one(
            f"SELECT deskripsi FROM tabel_cat_wali WHERE peserta_didik_id = {self._ph} LIMIT 1",
            (peserta_didik_id,),
        )
        return _text(row.get("deskripsi")) if row else ""

    def get_signature(self, peserta_didik_id: str, semester_id: str) -> SignatureInfo:
        date_row = self._executor.fetch_one(
            f"SELECT tempat_ttd, tanggal FROM tabel_tanggalrapor WHERE semester_id = {self._ph} LIMIT 1",
            (semester_id,),
        )
        homeroom_row = self._executor.fetch_one(
            f"""
            SELECT p.nama, p.nip
            FROM tabel_anggotakelas ak
            JOIN tabel_kelas k ON ak.rombongan_belajar_id = k.rombongan_belajar_id
            LEFT JOIN tabel_ptk p ON k.ptk_id = p.ptk_id
            WHERE ak.peserta_didik_id = {self._ph}
            ORDER BY COALESCE(k.jenis_rombel, 0) ASC
            LIMIT 1
            """,
            (peserta_didik_id,),
        )
        school = self.get_school()
        return SignatureInfo(
            tempat=_text(date_row.get("tempat_ttd")) if date_row else "",
            tanggal=_text(date_row.get("tanggal")) if date_row else "",
            nama_wali_kelas=_text(homeroom_row.get("nama")) if homeroom_row else "",
            nip_wali_kelas=_text(homeroom_row.get("nip")) if homeroom_row else "",
            nama_kepala_sekolah=school.nama_kepala_sekolah,
            nip_kepala_sekolah=school.nip_kepala_sekolah,
            nama_sekolah=school.nama,
        )

    def get_class_grades(self, rombongan_belajar_id: str, semester_id: str) -> dict[str, dict[str, float]]:
        rows = self._executor.fetch_all(
            f"""
            SELECT ak.peserta_didik_id, n.mata_pelajaran_id, n.nilai_peng
            FROM tabel_nilaiakhir n
            JOIN tabel_anggotakelas ak ON n.anggota_rombel_id = ak.anggota_rombel_id
            LEFT JOIN tabel_kelas k ON ak.rombongan_belajar_id = k.rombongan_belajar_id
            WHERE ak.peserta_didik_id IN (
                SELECT peserta_didik_id FROM tabel_anggotakelas WHERE rombongan_belajar_id = {self._ph}
            )
            AND n.semester_id = {self._ph}
            ORDER BY ak.peserta_didik_id, n.mata_pelajaran_id, COALESCE(k.jenis_rombel, 0) DESC
            """,
            (rombongan_belajar_id, semester_id),
        )
        grades: dict[str, dict[str, float]] = {}
        for row in rows:
            student_grades = grades.setdefault(_text(row["peserta_didik_id"]), {})
            key = _text(row["mata_pelajaran_id"])
            value = _float_or_none(row.get("nilai_peng"))
            if key not in student_grades and value is not None:
                student_grades[key] = value
        return grades

    def get_class_attendance(self, rombongan_belajar_id: str, semester_id: str) -> dict[str, Attendance]:
        rows = self._executor.fetch_all(
            f"""
            SELECT ak.peserta_didik_id, h.sakit, h.izin, h.tanpa_keterangan
            FROM tabel_kehadiran h
            JOIN tabel_anggotakelas ak ON h.anggota_rombel_id = ak.anggota_rombel_id
            WHERE ak.rombongan_belajar_id = {self._ph} AND h.semester_id = {self._ph}
            """,
            (rombongan_belajar_id, semester_id),
        )
        return {_text(row["peserta_didik_id"]): row_to_attendance(row) for row in rows}

    def list_class_extracurriculars(self, rombongan_belajar_id: str, semester_id: str) -> list[ExtracurricularGrade]:
        rows = self._executor.fetch_all(
            f"""
            SELECT ak.peserta_didik_id, re.id_ekskul, re.nm_ekskul, ne.nilai_ekstra
            FROM tabel_nilai_ekstra ne
            JOIN tabel_anggotakelas ak ON ne.anggota_rombel_id = ak.anggota_rombel_id
            LEFT JOIN refekstra_kurikuler re ON ne.id_ekskul_baru = re.id_ekskul
            WHERE ak.rombongan_belajar_id = {self._ph} AND ne.semester_id = {self._ph}
              AND ne.deskripsi IS NOT NULL
            ORDER BY re.id_ekskul
            """,
            (rombongan_belajar_id, semester_id),
        )
        return [
            ExtracurricularGrade(
                peserta_didik_id=_text(row["peserta_didik_id"]),
                ekskul_id=_text(row.get("id_ekskul")),
                nama=_text(row.get("nm_ekskul")),
                nilai=_int_or_none(row.get("nilai_ekstra")),
            )
            for row in rows
            if row.get("id_ekskul") is not None
        ]

    def get_student_identity(self, peserta_didik_id: str) -> StudentIdentity | None:
        row = self._executor.fetch_one(
            f"""
            SELECT s.peserta_didik_id, s.nm_siswa, s.nis, s.nisn, s.tempat_lahir, s.tanggal_lahir,
                   s.jenis_kelamin, s.agama, s.alamat_siswa, s.telepon_siswa, s.diterima_tanggal,
                   s.nm_ayah, s.nm_ibu, s.pekerjaan_ayah, s.pekerjaan_ibu, s.nm_wali, s.pekerjaan_wali,
                   sp.status_dalam_kel, sp.anak_ke, sp.sekolah_asal, sp.diterima_kelas,
                   sp.alamat_ortu, sp.telepon_ortu
            FROM tabel_siswa s
            LEFT JOIN tabel_siswa_pelengkap sp ON s.peserta_didik_id = sp.peserta_didik_id
            WHERE s.peserta_didik_id = {self._ph}
            """,
            (peserta_didik_id,),
        )
        return row_to_student_identity(row) if row else None

    def get_school_profile(self) -> SchoolProfile:
        row = self._executor.fetch_one(
            """
            SELECT nama, npsn, nss, alamat, kelurahan, kecamatan, kab_kota, propinsi, website, email,
                   nm_kepsek, nip_kepsek
            FROM tabel_sekolah LIMIT 1
            """
        )
        if row is None:
            logger.warning("tabel_sekolah is empty")
            return SchoolProfile(nama="")
        return SchoolProfile(
            nama=_text(row.get("nama")),
            npsn=_text(row.get("npsn")),
            nss=_text(row.get("nss")),
            alamat=_text(row.get("alamat")),
            kelurahan=_text(row.get("kelurahan")),
            kecamatan=_text(row.get("kecamatan")),
            kab_kota=_text(row.get("kab_kota")),
            propinsi=_text(row.get("propinsi")),
            website=_text(row.get("website")),
            email=_text(row.get("email")),
            nama_kepala_sekolah=_text(row.get("nm_kepsek")),
            nip_kepala_sekolah=_text(row.get("nip_kepsek")),
        )


class SqlMarginSettingsRepository(MarginSettingsRepository):
    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor
        self._ph = executor.placeholder

    def get(self, ptk_id: str) -> MarginSettings:
        row = self._executor.fetch_one(
            f"""
            SELECT margin_top, margin_bottom, margin_left, margin_right
            FROM tabel_margin_settings WHERE ptk_id = {self._ph}
            """,
            (ptk_id,),
        )
        return MarginSettings.from_row(row)

    def save(self, ptk_id: str, margins: MarginSettings) -> None:
        ph = self._ph
        existing = self._executor.fetch_one(
            f"SELECT ptk_id FROM tabel_margin_settings WHERE ptk_id = {ph} LIMIT 1",
            (ptk_id,),
        )
        values = (margins.top, margins.bottom, margins.left, margins.right)
        if existing:
            self._executor.execute(
                f"""
                UPDATE tabel_margin_settings
                SET margin_top = {ph}, margin_bottom = {ph}, margin_left = {ph}, margin_right = {ph},
                    updated_at = CURRENT_TIMESTAMP
                WHERE ptk_id = {ph}
                """,
                (*values, ptk_id),
            )
        else:
            self._executor.execute(
                f"""
                INSERT INTO tabel_margin_settings (ptk_id, margin_top, margin_bottom, margin_left, margin_right)
                VALUES ({ph}, {ph}, {ph}, {ph}, {ph})
                """,
                (ptk_id, *values),
            )
        logger.info("Margin settings saved", extra={"extra": {"ptk_id": ptk_id, **margins.to_dict()}})
