from __future__ import annotations

from dataclasses import dataclass, field

# e-Rapor keeps 0 in nilai_akhir until a grade is entered
UNGRADED = 0


@dataclass(frozen=True)
class Student:
    peserta_didik_id: str
    nama: str
    nis: str = ""
    nisn: str = ""
    nama_kelas: str = ""
    tingkat: int | None = None


@dataclass(frozen=True)
class SchoolInfo:
    nama: str
    alamat: str = ""
    kota: str = ""
    nama_kepala_sekolah: str = ""
    nip_kepala_sekolah: str = ""


@dataclass(frozen=True)
class SemesterInfo:
    semester_id: str
    nama_semester: str = ""
    tahun_ajaran: str = ""

    @property
    def semester_number(self) -> str:
        return "1" if "ganjil" in self.nama_semester.lower() else "2"

    @property
    def academic_year(self) -> str:
        if self.tahun_ajaran:
            return self.tahun_ajaran
        start = self.semester_id[:4]
        if start.isdigit():
            return f"{start}/{int(start) + 1}"
        return "-"


@dataclass(frozen=True)
class SubjectGrade:
    mata_pelajaran_id: str
    nama: str
    nilai_akhir: float | None = None
    capaian_kompetensi: str = ""


@dataclass(frozen=True)
class SubjectGroup:
    nama_kelompok: str
    subjects: tuple[SubjectGrade, ...] = ()


@dataclass(frozen=True)
class Attendance:
    sakit: int = 0
    izin: int = 0
    alpha: int = 0


@dataclass(frozen=True)
class ExtracurricularEntry:
    nama: str
    keterangan: str = ""
    nilai: str = ""


@dataclass(frozen=True)
class SignatureInfo:
    tempat: str = ""
    tanggal: str = ""
    nama_wali_kelas: str = ""
    nip_wali_kelas: str = ""
    nama_kepala_sekolah: str = ""
    nip_kepala_sekolah: str = ""
    nama_sekolah: str = ""


@dataclass(frozen=True)
class ReportCardUnit:
    """Everything needed to lay out one student's report card."""

    student: Student
    school: SchoolInfo
    semester: SemesterInfo
    groups: tuple[SubjectGroup, ...] = ()
    kokurikuler: str = ""
    extracurriculars: tuple[ExtracurricularEntry, ...] = ()
    attendance: Attendance = field(default_factory=Attendance)
    catatan_wali: str = ""
    signature: SignatureInfo = field(default_factory=SignatureInfo)


@dataclass(frozen=True)
class Subject:
    mata_pelajaran_id: str
    nama: str
    nama_ringkas: str = ""
    nama_kelompok: str = ""

    @property
    def short_label(self) -> str:
        return self.nama_ringkas or self.nama


@dataclass(frozen=True)
class ClassInfo:
    rombongan_belajar_id: str
    nama_kelas: str
    tingkat: int | None = None
    nama_wali_kelas: str = ""
    nip_wali_kelas: str = ""


@dataclass(frozen=True)
class ExtracurricularGrade:
    peserta_didik_id: str
    ekskul_id: str
    nama: str
    nilai: int | None = None


@dataclass(frozen=True)
class LegerExtracurricular:
    ekskul_id: str
    nama: str


@dataclass(frozen=True)
class LegerStudentRow:
    student: Student
    grades: dict[str, float] = field(default_factory=dict)
    attendance: Attendance = field(default_factory=Attendance)
    extracurriculars: dict[str, str] = field(default_factory=dict)
    total: float = 0.0
    average: float = 0.0
    rank: int | None = None


@dataclass(frozen=True)
class LegerData:
    nama_kelas: str
    nama_sekolah: str
    tahun_ajaran: str
    subjects: tuple[Subject, ...] = ()
    extracurriculars: tuple[LegerExtracurricular, ...] = ()
    rows: tuple[LegerStudentRow, ...] = ()
    nama_wali_kelas: str = ""


@dataclass(frozen=True)
class SchoolProfile:
    nama: str
    npsn: str = ""
    nss: str = ""
    alamat: str = ""
    kelurahan: str = ""
    kecamatan: str = ""
    kab_kota: str = ""
    propinsi: str = ""
    website: str = ""
    email: str = ""
    nama_kepala_sekolah: str = ""
    nip_kepala_sekolah: str = ""

    @property
    def signing_place(self) -> str:
        for prefix in ("Kab. ", "Kota "):
            if self.kab_kota.startswith(prefix):
                return self.kab_kota[len(prefix):].strip()
        return self.kab_kota.strip()


@dataclass(frozen=True)
class StudentIdentity:
    peserta_didik_id: str
    nama: str
    nis: str = ""
    nisn: str = ""
    tempat_lahir: str = ""
    tanggal_lahir: str = ""
    jenis_kelamin: str = ""
    agama: str = ""
    status_dalam_keluarga: str = ""
    anak_ke: str = ""
    alamat: str = ""
    telepon: str = ""
    sekolah_asal: str = ""
    diterima_kelas: str = ""
    diterima_tanggal: str = ""
    nama_ayah: str = ""
    nama_ibu: str = ""
    alamat_orang_tua: str = ""
    telepon_orang_tua: str = ""
    pekerjaan_ayah: str = ""
    pekerjaan_ibu: str = ""
    nama_wali: str = ""
    pekerjaan_wali: str = ""


@dataclass(frozen=True)
class SupplementUnit:
    """Cover, school profile, identity and transfer pages of one student's report book."""

    student: StudentIdentity
    school: SchoolProfile
