from __future__ import annotations

from collections.abc import Sequence

from rapor.domain.layout_models import ColumnSpec, MarginSettings, TableStyle
from rapor.domain.models import (
    Attendance,
    ExtracurricularEntry,
    ReportCardUnit,
    SignatureInfo,
    SubjectGroup,
    UNGRADED,
)
from rapor.pdf.canvas import PageCanvas
from rapor.pdf.table_layout import NO_DATA_LABEL, PageFlow, SectionBlock, SideBySideLayout, TableLayout, TextBlockLayout

REPORT_TITLE = "LAPORAN HASIL BELAJAR"
SECTION_GAP = 5.0
IDENTITY_FONT_SIZE = 10
IDENTITY_LABEL_WIDTH = 35.0
IDENTITY_VALUE_OFFSET = 5.0
FOOTER_OFFSET = 14.0
ATTENDANCE_WIDTH = 53.0
ATTENDANCE_ROW_HEIGHT = 6.0
SIDE_BY_SIDE_GAP = 5.0
PARENT_RESPONSE_BOX_HEIGHT = 22.0
SIGNATURE_BLOCK_HEIGHT = 65.0
DEFAULT_KOKURIKULER_TEXT = "Tidak ada deskripsi kokurikuler."

GRADE_COLUMNS = (
    ColumnSpec("No", 10, "no", align="center", vertical="middle", wrap=False),
    ColumnSpec("Mata Pelajaran", 40, "nama", vertical="middle"),
    ColumnSpec("Nilai Akhir", 20, "nilai", align="center", vertical="middle", wrap=False),
    ColumnSpec("Capaian Kompetensi", None, "capaian", align="justify"),
)

EXTRACURRICULAR_COLUMNS = (
    ColumnSpec("No", 8, "no", align="center", vertical="middle", wrap=False),
    ColumnSpec("Ekstrakurikuler", 50, "nama", vertical="middle"),
    ColumnSpec("Keterangan", None, "keterangan", align="justify"),
)

EXTRACURRICULAR_STYLE = TableStyle(line_height=4.0)


def predikat_for(nilai: float) -> str:
    if nilai >= 90:
        return "A"
    if nilai >= 80:
        return "B"
    if nilai >= 70:
        return "C"
    if nilai >= 60:
        return "D"
    return "E"


def fase_for_tingkat(tingkat: int | str | None) -> str:
    try:
        level = int(tingkat) if tingkat is not None else None
    except (TypeError, ValueError):
        return "N/A"
    if level in (10, 11):
        return "E"
    if level == 12:
        return "F"
    return "N/A"


def clean_group_name(name: str) -> str:
    """``"mata pelajaran pilihan - IPS"`` becomes ``"Mata Pelajaran Pilihan"``."""

    base = name.split(" - ")[0] if " - " in name else name
    return " ".join(word[:1].upper() + word[1:].lower() for word in base.split(" "))


def _format_grade(value: float | None) -> str:
    if value is None or value == UNGRADED:
        return NO_DATA_LABEL
    return str(int(value)) if float(value).is_integer() else str(value)


def _identity_rows(unit: ReportCardUnit) -> list[tuple[str, str, str, str]]:
    student = unit.student
    nis_nisn = " / ".join(part for part in (student.nis, student.nisn) if part) or NO_DATA_LABEL
    return [
        ("Nama Murid", student.nama.upper(), "Kelas", student.nama_kelas or NO_DATA_LABEL),
        ("NIS/NISN", nis_nisn, "Fase", fase_for_tingkat(student.tingkat)),
        ("Sekolah", unit.school.nama or NO_DATA_LABEL, "Semester", unit.semester.semester_number),
        ("Alamat", unit.school.alamat or NO_DATA_LABEL, "Tahun Ajaran", unit.semester.academic_year),
    ]


def _draw_identity(canvas: PageCanvas, margins: MarginSettings, unit: ReportCardUnit, y: float, row_spacing: float) -> float:
    left_col = margins.left
    mid_col = canvas.width / 2 + 25
    canvas.set_font("body", "normal", IDENTITY_FONT_SIZE)
    for index, (left_label, left_value, right_label, right_value) in enumerate(_identity_rows(unit)):
        if index:
            y += row_spacing
        for col, label, value in ((left_col, left_label, left_value), (mid_col, right_label, right_value)):
            colon = col + IDENTITY_LABEL_WIDTH
            canvas.text(label, col, y)
            canvas.text(":", colon, y)
            canvas.text(value, colon + IDENTITY_VALUE_OFFSET, y)
    return y


def draw_report_header(flow: PageFlow, unit: ReportCardUnit) -> float:
    """Identity block plus title on the first page of a report card."""

    canvas, margins = flow.canvas, flow.margins
    y = _draw_identity(canvas, margins, unit, margins.top, 4.0)
    y += 3
    canvas.set_line_width(0.3)
    canvas.line(margins.left, y, margins.left + flow.content_width, y)
    y += 10
    canvas.set_font("body", "bold", 12)
    canvas.text(REPORT_TITLE, canvas.width / 2, y, align="center")
    return y + 5


def draw_running_strip(canvas: PageCanvas, margins: MarginSettings, unit: ReportCardUnit) -> float:
    """Compact identity strip repeated at the top of continuation pages."""

    y = _draw_identity(canvas, margins, unit, margins.top, 5.0)
    y += 3
    canvas.set_line_width(0.5)
    canvas.line(margins.left, y, canvas.width - margins.right, y)
    return y + 4


def draw_footer(canvas: PageCanvas, margins: MarginSettings, unit: ReportCardUnit, page_number: int) -> None:
    footer_y = canvas.height - margins.bottom + FOOTER_OFFSET
    right = canvas.width - margins.right
    canvas.set_line_width(0.5)
    canvas.line(margins.left, footer_y - 6, right, footer_y - 6)
    student = unit.student
    label = " | ".join((student.nama_kelas or NO_DATA_LABEL, student.nama, student.nis or NO_DATA_LABEL))
    canvas.set_font("courier", "bold", 9)
    canvas.text(label.upper(), margins.left, footer_y)
    canvas.text(f"Halaman : {page_number}", right, footer_y, align="right")


def draw_grade_table(flow: PageFlow, groups: Sequence[SubjectGroup], y: float) -> float:
    table = TableLayout(flow, GRADE_COLUMNS)
    y = flow.ensure_space(y, table.style.header_height + table.style.min_row_height)
    y = table.draw_header(y)
    drawn_any = False
    for group in groups:
        if not group.subjects:
            continue
        y = table.draw_group_row(y, clean_group_name(group.nama_kelompok))
        records = [
            {
                "no": index,
                "nama": subject.nama,
                "nilai": _format_grade(subject.nilai_akhir),
                "capaian": subject.capaian_kompetensi,
            }
            for index, subject in enumerate(group.subjects, start=1)
        ]
        y = table.draw_rows(y, records)
        drawn_any = True
    if not drawn_any:
        y = table.draw_rows(y, [])
    return y


def draw_kokurikuler(flow: PageFlow, text: str, y: float) -> float:
    block = TextBlockLayout(flow, title="KOKURIKULER")
    return block.draw(y, text.strip() or DEFAULT_KOKURIKULER_TEXT)


def draw_extracurricular_table(flow: PageFlow, entries: Sequence[ExtracurricularEntry], y: float) -> float:
    table = TableLayout(flow, EXTRACURRICULAR_COLUMNS, style=EXTRACURRICULAR_STYLE, width=flow.content_width)
    records = [
        {"no": index, "nama": entry.nama, "keterangan": entry.keterangan}
        for index, entry in enumerate(entries, start=1)
    ]
    return table.draw(y, records)


def attendance_block(flow: PageFlow, attendance: Attendance) -> SectionBlock:
    canvas = flow.canvas
    x = flow.margins.left
    header_height = 9.0
    label_width = ATTENDANCE_WIDTH * 0.65
    rows = (("Sakit", attendance.sakit), ("Izin", attendance.izin), ("Tanpa Keterangan", attendance.alpha))

    def draw(y: float) -> float:
        canvas.set_line_width(0.3)
        canvas.set_fill_color((240, 240, 240))
        canvas.rect(x, y, ATTENDANCE_WIDTH, header_height, "FD")
        canvas.set_font("body", "bold", 9)
        canvas.text("Ketidakhadiran", x + ATTENDANCE_WIDTH / 2, y + header_height / 2 + 1.5, align="center")
        y += header_height
        canvas.set_font("body", "normal", 9)
        for label, days in rows:
            canvas.rect(x, y, label_width, ATTENDANCE_ROW_HEIGHT)
            canvas.rect(x + label_width, y, ATTENDANCE_WIDTH - label_width, ATTENDANCE_ROW_HEIGHT)
            text_y = y + ATTENDANCE_ROW_HEIGHT / 2 + 1.3
            canvas.text(label, x + 3, text_y)
            canvas.text(f": {days} hari", x + label_width + 3, text_y)
            y += ATTENDANCE_ROW_HEIGHT
        return y

    return SectionBlock(header_height + len(rows) * ATTENDANCE_ROW_HEIGHT, draw)


def homeroom_note_block(flow: PageFlow, note: str) -> SectionBlock:
    canvas = flow.canvas
    x = flow.margins.left + ATTENDANCE_WIDTH + SIDE_BY_SIDE_GAP
    width = canvas.width - flow.margins.right - x
    header_height = 9.0
    padding = 3.0
    line_height = 4.0
    canvas.set_font("body", "normal", 9)
    lines = canvas.split_text_to_size(note.strip() or NO_DATA_LABEL, width - 2 * padding)
    content_height = max(18.0, len(lines) * line_height + 6)

    def draw(y: float) -> float:
        canvas.set_line_width(0.3)
        canvas.set_fill_color((240, 240, 240))
        canvas.rect(x, y, width, header_height, "FD")
        canvas.set_font("body", "bold", 9)
        canvas.text("Catatan Wali Kelas", x + width / 2, y + header_height / 2 + 1.5, align="center")
        y += header_height
        canvas.set_font("body", "normal", 9)
        canvas.rect(x, y, width, content_height)
        canvas.text(lines, x + padding, y + padding + 3, align="justify", max_width=width - 2 * padding, line_height=line_height)
        return y + content_height

    return SectionBlock(header_height + content_height, draw)


def draw_attendance_and_note(flow: PageFlow, unit: ReportCardUnit, y: float) -> float:
    pair = SideBySideLayout(flow)
    return pair.draw(y, attendance_block(flow, unit.attendance), homeroom_note_block(flow, unit.catatan_wali))


def draw_parent_response(flow: PageFlow, y: float) -> float:
    canvas = flow.canvas
    header_height = 8.0
    x, width = flow.margins.left, flow.content_width
    y = flow.ensure_space(y, header_height + PARENT_RESPONSE_BOX_HEIGHT)
    canvas.set_line_width(0.3)
    canvas.set_fill_color((240, 240, 240))
    canvas.rect(x, y, width, header_height, "FD")
    canvas.set_font("body", "bold", 9)
    canvas.text("Tanggapan Orang Tua/Wali Murid", x + width / 2, y + header_height / 2 + 1.3, align="center")
    y += header_height
    canvas.rect(x, y, width, PARENT_RESPONSE_BOX_HEIGHT)
    return y + PARENT_RESPONSE_BOX_HEIGHT


def _underline(canvas: PageCanvas, x: float, y: float, text: str) -> None:
    canvas.set_line_width(0.2)
    canvas.line(x, y + 0.5, x + canvas.get_text_width(text), y + 0.5)


def draw_signature(flow: PageFlow, signature: SignatureInfo, y: float) -> float:
    """Parent, principal and wali kelas signatures in three equal columns."""

    canvas, margins = flow.canvas, flow.margins
    y = flow.ensure_space(y, SIGNATURE_BLOCK_HEIGHT)
    col_width = flow.content_width / 3
    col1, col2, col3 = margins.left, margins.left + col_width, margins.left + 2 * col_width

    y += 5
    line_y = y + 25
    canvas.set_font("body", "normal", 10)

    canvas.text("Orang Tua Murid", col1, y)
    dotted = "." * 60
    limit = min(50.0, col_width - 5)
    while dotted and canvas.get_text_width(dotted) > limit:
        dotted = dotted[:-1]
    canvas.text(dotted, col1, line_y)

    place_date = ", ".join(part for part in (signature.tempat, signature.tanggal) if part) or NO_DATA_LABEL
    canvas.text(place_date, col3, y)
    canvas.text("Wali Kelas", col3, y + 5)
    canvas.set_font("body", "bold", 10)
    homeroom = signature.nama_wali_kelas or NO_DATA_LABEL
    canvas.text(homeroom, col3, line_y)
    _underline(canvas, col3, line_y, homeroom)
    canvas.set_font("body", "normal", 10)
    canvas.text(f"NIP. {signature.nip_wali_kelas or NO_DATA_LABEL}", col3, line_y + 5)

    current = y + 30
    heading = f"Kepala {signature.nama_sekolah}".strip()
    canvas.text(heading, col2 + 5, current)
    current += 25
    canvas.set_font("body", "bold", 10)
    principal = signature.nama_kepala_sekolah or NO_DATA_LABEL
    name_x = col2 + col_width / 2 - canvas.get_text_width(principal) / 2
    canvas.text(principal, name_x, current)
    _underline(canvas, name_x, current, principal)
    current += 5
    canvas.set_font("body", "normal", 10)
    canvas.text(f"NIP. {signature.nip_kepala_sekolah or NO_DATA_LABEL}", name_x, current)
    return current + 5
