"""Fixed-layout pages of the report book that surround the report card itself.

All coordinates are millimetres from the top-left corner, like the report
card sections. Each function draws onto the current page and returns nothing;
the composer decides where pages start.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from rapor.domain.models import SchoolProfile, StudentIdentity, SupplementUnit
from rapor.pdf.canvas import PageCanvas
from rapor.pdf.table_layout import NO_DATA_LABEL, PageFlow

MONTHS = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

SCHOOL_LEVEL = "SEKOLAH MENENGAH ATAS"
SCHOOL_LEVEL_SHORT = "( SMA )"
MINISTRY = "KEMENTERIAN PENDIDIKAN DASAR DAN MENENGAH"
COUNTRY = "REPUBLIK INDONESIA"
TRANSFER_TITLE = "KETERANGAN PINDAH SEKOLAH"
DEFAULT_ENTRY_CLASS = "X"

COVER_TOP_GAP = 40.0
COVER_LOGO_BAND = 70.0
COVER_BOX_WIDTH = 130.0
COVER_BOX_HEIGHT = 10.0
COVER_FOOTER_OFFSET = 45.0

SCHOOL_LABEL_INDENT = 11.0
SCHOOL_COLON_OFFSET = 50.0
SCHOOL_VALUE_OFFSET = 55.0

IDENTITY_LABEL_OFFSET = 10.0
IDENTITY_COLON_OFFSET = 70.0
IDENTITY_VALUE_OFFSET = 75.0
PHOTO_OFFSET = 47.0
PHOTO_WIDTH = 30.0
PHOTO_HEIGHT = 40.0
SIGNATURE_WIDTH = 80.0

TRANSFER_HEADER_HEIGHT = 8.0
TRANSFER_SUBHEADER_HEIGHT = 25.0
TRANSFER_ROW_HEIGHT = 65.0
TRANSFER_MAX_ROWS = 3
TRANSFER_OUT_COLUMNS = (25.0, 30.0, 50.0, 65.0)
TRANSFER_IN_COLUMNS = (15.0, 50.0, 50.0, 55.0)
TRANSFER_IN_ITEMS = (
    ("1.", "Nama Siswa", True),
    ("2.", "Nomor Induk", True),
    ("3.", "Nama Sekolah", True),
    ("4.", "Masuk di Sekolah ini:", False),
    ("", "   a. Tanggal", True),
    ("", "   b. Di Kelas", True),
    ("5.", "Tahun Ajaran", True),
)
TRANSFER_IN_ITEM_STEP = 8.0


def format_long_date(value: str) -> str:
    """``2009-05-17`` becomes ``17 Mei 2009``; anything else is returned as stored."""

    match = _ISO_DATE.match(value or "")
    if not match:
        return value or ""
    year, month, day = (int(part) for part in match.groups())
    if not 1 <= month <= 12:
        return value
    return f"{day} {MONTHS[month - 1]} {year}"


def capitalize_words(value: str) -> str:
    return re.sub(r"\b\w", lambda match: match.group().upper(), (value or "").lower())


def _dots(canvas: PageCanvas, x_start: float, x_end: float, y: float) -> None:
    count = int((x_end - x_start) // max(canvas.get_text_width("."), 0.1))
    if count > 0:
        canvas.text("." * count, x_start, y)


def _school_heading(canvas: PageCanvas, y: float, size: float, gap: float) -> float:
    center = canvas.width / 2
    canvas.set_font("body", "bold", size)
    canvas.text(SCHOOL_LEVEL, center, y, align="center")
    canvas.text(SCHOOL_LEVEL_SHORT, center, y + 8, align="center")
    return y + 8 + gap


def draw_cover_page(flow: PageFlow, unit: SupplementUnit) -> None:
    canvas = flow.canvas
    center = canvas.width / 2
    y = _school_heading(canvas, flow.margins.top + COVER_TOP_GAP, 20, 20)
    y += COVER_LOGO_BAND

    student = unit.student
    box_x = center - COVER_BOX_WIDTH / 2
    for label, value in (
        ("Nama Peserta Didik", student.nama.upper()),
        ("NISN / NIS", f"{student.nisn or NO_DATA_LABEL} / {student.nis or NO_DATA_LABEL}"),
    ):
        canvas.set_font("body", "bold", 18)
        canvas.text(label, center, y, align="center")
        y += 3
        canvas.set_line_width(0.3)
        canvas.rect(box_x, y, COVER_BOX_WIDTH, COVER_BOX_HEIGHT)
        canvas.text(value, center, y + 8, align="center")
        y += 25

    footer_y = canvas.height - COVER_FOOTER_OFFSET
    canvas.set_font("body", "bold", 16)
    canvas.text(MINISTRY, center, footer_y, align="center")
    canvas.text(COUNTRY, center, footer_y + 8, align="center")


def school_rows(school: SchoolProfile) -> list[tuple[str, str]]:
    return [
        ("Nama Sekolah", school.nama),
        ("NPSN", school.npsn),
        ("NIS/NSS/NDS", school.nss),
        ("Alamat Sekolah", school.alamat),
        ("Kelurahan / Desa", school.kelurahan),
        ("Kecamatan", school.kecamatan),
        ("Kota/Kabupaten", school.kab_kota),
        ("Provinsi", school.propinsi),
        ("Website", school.website),
        ("E-mail", school.email),
    ]


def draw_school_info_page(flow: PageFlow, unit: SupplementUnit) -> None:
    canvas, margins = flow.canvas, flow.margins
    y = _school_heading(canvas, margins.top + 10, 16, 15)
    label_x = margins.left + SCHOOL_LABEL_INDENT
    value_x = margins.left + SCHOOL_VALUE_OFFSET
    value_width = canvas.width - margins.right - value_x
    canvas.set_font("body", "normal", 13)
    for label, value in school_rows(unit.school):
        canvas.text(label, label_x, y)
        canvas.text(":", margins.left + SCHOOL_COLON_OFFSET, y)
        lines = canvas.split_text_to_size(value or NO_DATA_LABEL, value_width)
        canvas.text(lines, value_x, y, line_height=5)
        y += 10 if len(lines) == 1 else len(lines) * 5 + 5


def identity_rows(student: StudentIdentity) -> list[tuple[str, str, str]]:
    """(number, label, value) rows of the student identity page; sub-rows have no number."""

    birth_date = format_long_date(student.tanggal_lahir)
    if student.tempat_lahir and birth_date:
        birth = f"{student.tempat_lahir}, {birth_date}"
    else:
        birth = student.tempat_lahir
    return [
        ("1.", "Nama Lengkap Peserta Didik", student.nama),
        ("2.", "Nomor Induk/NISN", f"{student.nis} / {student.nisn}"),
        ("3.", "Tempat, Tanggal Lahir", birth),
        ("4.", "Jenis Kelamin", student.jenis_kelamin),
        ("5.", "Agama", student.agama),
        ("6.", "Status dalam Keluarga", student.status_dalam_keluarga),
        ("7.", "Anak ke", student.anak_ke),
        ("8.", "Alamat Peserta Didik", student.alamat),
        ("9.", "Nomor Telepon Rumah", student.telepon),
        ("10.", "Sekolah Asal", student.sekolah_asal.upper()),
        ("11.", "Diterima di sekolah ini", ""),
        ("", "Di kelas", student.diterima_kelas or DEFAULT_ENTRY_CLASS),
        ("", "Pada tanggal", format_long_date(student.diterima_tanggal)),
        ("12.", "Nama Orang Tua", ""),
        ("", "a. Ayah", capitalize_words(student.nama_ayah)),
        ("", "b. Ibu", capitalize_words(student.nama_ibu)),
        ("13.", "Alamat Orang Tua", student.alamat_orang_tua),
        ("", "Nomor Telepon Rumah", student.telepon_orang_tua),
        ("14.", "Pekerjaan Orang Tua :", ""),
        ("", "a. Ayah", student.pekerjaan_ayah),
        ("", "b. Ibu", student.pekerjaan_ibu),
        ("15.", "Nama Wali Siswa", student.nama_wali),
        ("16.", "Alamat Wali Peserta Didik", ""),
        ("", "Nomor Telepon Rumah", ""),
        ("17.", "Pekerjaan Wali Peserta Didik", student.pekerjaan_wali),
    ]


def draw_identity_page(flow: PageFlow, unit: SupplementUnit) -> None:
    canvas, margins = flow.canvas, flow.margins
    y = margins.top + 5
    canvas.set_font("body", "bold", 14)
    canvas.text("IDENTITAS PESERTA DIDIK", canvas.width / 2, y, align="center")
    y += 13

    value_x = margins.left + IDENTITY_VALUE_OFFSET
    value_width = canvas.width - margins.right - value_x
    canvas.set_font("body", "normal", 11)
    for number, label, value in identity_rows(unit.student):
        if number:
            canvas.text(number, margins.left, y)
        canvas.text(label, margins.left + IDENTITY_LABEL_OFFSET, y)
        canvas.text(":", margins.left + IDENTITY_COLON_OFFSET, y)
        lines = canvas.split_text_to_size(value, value_width) if value else [""]
        canvas.text(lines, value_x, y, line_height=5)
        y += (len(lines) - 1) * 5 + 7

    y += 10
    photo_x = margins.left + PHOTO_OFFSET
    canvas.set_line_width(0.2)
    canvas.rect(photo_x, y, PHOTO_WIDTH, PHOTO_HEIGHT)
    canvas.set_font("body", "normal", 8)
    canvas.text("Foto 3x4", photo_x + PHOTO_WIDTH / 2, y + 22, align="center")
    _draw_principal_signature(canvas, canvas.width - margins.right - SIGNATURE_WIDTH, y + 4, unit)


def _draw_principal_signature(canvas: PageCanvas, x: float, y: float, unit: SupplementUnit) -> None:
    school = unit.school
    signed_on = format_long_date(unit.student.diterima_tanggal)
    place_date = ", ".join(part for part in (school.signing_place, signed_on) if part) or NO_DATA_LABEL
    canvas.set_font("body", "normal", 11)
    canvas.text(place_date, x, y)
    canvas.text("Kepala Sekolah", x, y + 5)
    y += 29
    canvas.set_font("body", "bold", 10)
    principal = school.nama_kepala_sekolah or NO_DATA_LABEL
    canvas.text(principal, x, y)
    canvas.line(x, y + 1, x + canvas.get_text_width(principal), y + 1)
    canvas.set_font("body", "normal", 10)
    canvas.text(f"NIP. {school.nip_kepala_sekolah or NO_DATA_LABEL}", x, y + 5)


def _scaled_columns(widths: Sequence[float], available: float) -> list[float]:
    total = sum(widths)
    return [width * available / total for width in widths]


def transfer_row_count(flow: PageFlow, table_top: float, header_height: float) -> int:
    """Blank transfer rows that fit under the header; at least one, at most three."""

    room = flow.bottom_limit - table_top - header_height
    return max(1, min(TRANSFER_MAX_ROWS, int(room // TRANSFER_ROW_HEIGHT)))


def _transfer_heading(flow: PageFlow, student: StudentIdentity) -> float:
    canvas, margins = flow.canvas, flow.margins
    y = margins.top
    canvas.set_font("body", "bold", 14)
    canvas.text(TRANSFER_TITLE, canvas.width / 2, y, align="center")
    y += 15
    canvas.set_font("body", "normal", 11)
    canvas.text("Nama Peserta Didik  :", margins.left, y)
    if student.nama:
        canvas.text(student.nama, margins.left + 40, y)
    else:
        _dots(canvas, margins.left + 40, canvas.width - margins.right, y)
    return y + 7


def _column_lines(canvas: PageCanvas, xs: Sequence[float], top: float, bottom: float) -> None:
    for x in xs:
        canvas.line(x, top, x, bottom)


def _centered_block(canvas: PageCanvas, text: str, x: float, width: float, top: float, height: float) -> None:
    lines = canvas.split_text_to_size(text, width - 4)
    start = top + height / 2 - len(lines) * 4 / 2 + 2
    canvas.text(lines, x + width / 2, start, align="center", line_height=4)


def draw_transfer_out_page(flow: PageFlow, unit: SupplementUnit) -> None:
    canvas = flow.canvas
    top = _transfer_heading(flow, unit.student)
    x = flow.margins.left
    widths = _scaled_columns(TRANSFER_OUT_COLUMNS, flow.content_width)
    table_width = sum(widths)
    header_height = TRANSFER_HEADER_HEIGHT + TRANSFER_SUBHEADER_HEIGHT
    rows = transfer_row_count(flow, top, header_height)

    canvas.set_line_width(0.2)
    canvas.rect(x, top, table_width, header_height + rows * TRANSFER_ROW_HEIGHT)
    canvas.set_font("body", "bold", 11)
    canvas.text("KELUAR", x + table_width / 2, top + TRANSFER_HEADER_HEIGHT / 2 + 2, align="center")
    sub_top = top + TRANSFER_HEADER_HEIGHT
    canvas.line(x, sub_top, x + table_width, sub_top)

    column_x = [x + sum(widths[:index]) for index in range(len(widths))]
    canvas.set_font("body", "bold", 9)
    headings = (
        "Tanggal",
        "Kelas yang ditinggalkan",
        "Sebab-sebab Keluar atau Atas Permintaan (Tertulis)",
        "Tanda Tangan Kepala Sekolah, Stempel Sekolah, dan Tanda Tangan Orang Tua/Wali",
    )
    for heading, cell_x, width in zip(headings, column_x, widths):
        _centered_block(canvas, heading, cell_x, width, sub_top, TRANSFER_SUBHEADER_HEIGHT)

    row_top = sub_top + TRANSFER_SUBHEADER_HEIGHT
    table_bottom = row_top + rows * TRANSFER_ROW_HEIGHT
    _column_lines(canvas, column_x[1:], sub_top, table_bottom)
    canvas.set_font("body", "normal", 10)
    sign_x, sign_width = column_x[-1], widths[-1]
    for _ in range(rows):
        canvas.line(x, row_top, x + table_width, row_top)
        dot_start, dot_end = sign_x + 5, sign_x + sign_width - 5
        _dots(canvas, dot_start, dot_end, row_top + 8)
        canvas.text("Kepala Sekolah,", dot_start, row_top + 12)
        _dots(canvas, dot_start, dot_end, row_top + 30)
        canvas.line(dot_start, row_top + 31, dot_end, row_top + 31)
        canvas.text("NIP:", dot_start, row_top + 35)
        canvas.text("Orang Tua/Wali,", dot_start, row_top + 39)
        _dots(canvas, dot_start, dot_end, row_top + 60)
        canvas.line(dot_start, row_top + 61, dot_end, row_top + 61)
        row_top += TRANSFER_ROW_HEIGHT


def draw_transfer_in_page(flow: PageFlow, unit: SupplementUnit) -> None:
    canvas = flow.canvas
    top = _transfer_heading(flow, unit.student)
    x = flow.margins.left
    widths = _scaled_columns(TRANSFER_IN_COLUMNS, flow.content_width)
    table_width = sum(widths)
    rows = transfer_row_count(flow, top, TRANSFER_HEADER_HEIGHT)
    column_x = [x + sum(widths[:index]) for index in range(len(widths))]

    canvas.set_line_width(0.2)
    canvas.rect(x, top, table_width, TRANSFER_HEADER_HEIGHT + rows * TRANSFER_ROW_HEIGHT)
    canvas.set_font("body", "bold", 12)
    canvas.text("NO", x + widths[0] / 2, top + TRANSFER_HEADER_HEIGHT / 2 + 2, align="center")
    merged = table_width - widths[0]
    canvas.text("MASUK", column_x[1] + merged / 2, top + TRANSFER_HEADER_HEIGHT / 2 + 2, align="center")
    canvas.line(column_x[1], top, column_x[1], top + TRANSFER_HEADER_HEIGHT)

    row_top = top + TRANSFER_HEADER_HEIGHT
    _column_lines(canvas, column_x[1:], row_top, row_top + rows * TRANSFER_ROW_HEIGHT)
    canvas.set_font("body", "normal", 10)
    for _ in range(rows):
        canvas.line(x, row_top, x + table_width, row_top)
        item_y = row_top + TRANSFER_IN_ITEM_STEP
        for number, label, fill_line in TRANSFER_IN_ITEMS:
            if number:
                canvas.text(number, x + widths[0] / 2, item_y, align="center")
            canvas.text(label, column_x[1] + 2, item_y)
            if fill_line:
                canvas.line(column_x[2] + 5, item_y + 3, column_x[2] + widths[2] - 5, item_y + 3)
            item_y += TRANSFER_IN_ITEM_STEP

        dot_start, dot_end = column_x[3] + 5, column_x[3] + widths[3] - 5
        _dots(canvas, dot_start, dot_end, row_top + 8)
        canvas.text("Kepala Sekolah,", dot_start, row_top + 15)
        _dots(canvas, dot_start, dot_end, row_top + 50)
        canvas.line(dot_start, row_top + 51, dot_end, row_top + 51)
        canvas.text("NIP.", dot_start, row_top + 55)
        row_top += TRANSFER_ROW_HEIGHT
