"""Class ledger (leger nilai) export to an Excel workbook."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from rapor.domain.models import LegerData

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="FF99FFD6", end_color="FF99FFD6", fill_type="solid")
TOP_RANK_FILL = PatternFill(start_color="FF90EE90", end_color="FF90EE90", fill_type="solid")
THIN = Side(style="thin")
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEFT = Alignment(horizontal="left", vertical="center")

HEADER_TOP_ROW = 4
HEADER_BOTTOM_ROW = 7
FIRST_DATA_ROW = 8
TOP_RANK_LIMIT = 10
AVERAGE_FORMAT = "0.00"
MISSING_GRADE = "-"


@dataclass(frozen=True)
class LegerColumn:
    label: str
    width: float


IDENTITY_COLUMNS = (
    LegerColumn("NO", 5),
    LegerColumn("NAMA", 30),
    LegerColumn("NISN", 12),
    LegerColumn("NIS", 12),
)
SUMMARY_COLUMNS = (
    LegerColumn("JUMLAH", 10),
    LegerColumn("RATA-RATA", 10),
    LegerColumn("RANGKING", 10),
)
ATTENDANCE_COLUMNS = (
    LegerColumn("S", 7),
    LegerColumn("I", 7),
    LegerColumn("A", 7),
)
SUBJECT_WIDTH = 7
EXTRACURRICULAR_WIDTH = 8


def build_leger_filename(nama_kelas: str) -> str:
    return f"Leger_Nilai_{nama_kelas.replace(' ', '_').replace('/', '-')}.xlsx"


def build_leger_workbook(data: LegerData) -> Workbook:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Leger"

    subject_start = len(IDENTITY_COLUMNS) + 1
    summary_start = subject_start + len(data.subjects)
    attendance_start = summary_start + len(SUMMARY_COLUMNS)
    ekskul_start = attendance_start + len(ATTENDANCE_COLUMNS)
    last_column = ekskul_start + len(data.extracurriculars) - 1

    _write_title(sheet, data, last_column)
    _write_header(sheet, data, subject_start, summary_start, attendance_start, ekskul_start)
    _apply_widths(sheet, data)

    for offset, row in enumerate(data.rows):
        excel_row = FIRST_DATA_ROW + offset
        student = row.student
        values: list[object] = [offset + 1, student.nama, student.nisn or MISSING_GRADE, student.nis or MISSING_GRADE]
        values += [row.grades.get(subject.mata_pelajaran_id, MISSING_GRADE) for subject in data.subjects]
        values += [row.total, row.average, row.rank]
        values += [row.attendance.sakit, row.attendance.izin, row.attendance.alpha]
        values += [row.extracurriculars.get(ekskul.ekskul_id, "") for ekskul in data.extracurriculars]
        for column, value in enumerate(values, start=1):
            cell = sheet.cell(row=excel_row, column=column, value=value)
            cell.border = BORDER
            cell.alignment = LEFT if column == 2 else CENTER
        sheet.cell(row=excel_row, column=summary_start + 1).number_format = AVERAGE_FORMAT
        if row.rank is not None and row.rank <= TOP_RANK_LIMIT:
            sheet.cell(row=excel_row, column=summary_start + 2).fill = TOP_RANK_FILL

    _write_legend(sheet, data, FIRST_DATA_ROW + len(data.rows) + 2)
    sheet.freeze_panes = sheet.cell(row=FIRST_DATA_ROW, column=subject_start)
    logger.info(
        "Leger workbook built",
        extra={"extra": {"kelas": data.nama_kelas, "rows": len(data.rows), "columns": last_column}},
    )
    return workbook


def leger_workbook_bytes(data: LegerData) -> bytes:
    buffer = io.BytesIO()
    build_leger_workbook(data).save(buffer)
    return buffer.getvalue()


def _write_title(sheet: Worksheet, data: LegerData, last_column: int) -> None:
    sheet.cell(row=1, column=1, value=f"LEGER NILAI RAPOR SISWA TAHUN PELAJARAN {data.tahun_ajaran}")
    sheet.cell(row=1, column=1).font = Font(bold=True, size=14)
    sheet.cell(row=1, column=1).alignment = CENTER
    sheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=max(last_column, 1))
    sheet.cell(row=2, column=1, value=f"SEKOLAH : {data.nama_sekolah}").font = Font(bold=True)
    sheet.cell(row=3, column=1, value=f"KELAS : {data.nama_kelas}").font = Font(bold=True)


def _header_cell(sheet: Worksheet, row: int, column: int, label: str, *, end_row: int | None = None, end_column: int | None = None) -> None:
    end_row = end_row or row
    end_column = end_column or column
    for r in range(row, end_row + 1):
        for c in range(column, end_column + 1):
            target = sheet.cell(row=r, column=c)
            target.fill = HEADER_FILL
            target.border = BORDER
    cell = sheet.cell(row=row, column=column, value=label)
    cell.font = Font(bold=True)
    cell.alignment = CENTER
    if (end_row, end_column) != (row, column):
        sheet.merge_cells(start_row=row, start_column=column, end_row=end_row, end_column=end_column)


def _write_header(
    sheet: Worksheet,
    data: LegerData,
    subject_start: int,
    summary_start: int,
    attendance_start: int,
    ekskul_start: int,
) -> None:
    top, bottom = HEADER_TOP_ROW, HEADER_BOTTOM_ROW
    for index, column in enumerate(IDENTITY_COLUMNS, start=1):
        _header_cell(sheet, top, index, column.label, end_row=bottom)

    if data.subjects:
        _header_cell(sheet, top, subject_start, "MATA PELAJARAN", end_column=summary_start - 1)
        for offset, subject in enumerate(data.subjects):
            _header_cell(sheet, top + 1, subject_start + offset, subject.short_label, end_row=bottom)

    for offset, column in enumerate(SUMMARY_COLUMNS):
        _header_cell(sheet, top, summary_start + offset, column.label, end_row=bottom)

    _header_cell(sheet, top, attendance_start, "KETIDAKHADIRAN", end_row=bottom - 1, end_column=ekskul_start - 1)
    for offset, column in enumerate(ATTENDANCE_COLUMNS):
        _header_cell(sheet, bottom, attendance_start + offset, column.label)

    if data.extracurriculars:
        last = ekskul_start + len(data.extracurriculars) - 1
        _header_cell(sheet, top, ekskul_start, "EKSTRA KURIKULER", end_row=bottom - 1, end_column=last)
        for offset, ekskul in enumerate(data.extracurriculars):
            _header_cell(sheet, bottom, ekskul_start + offset, ekskul.nama)


def _apply_widths(sheet: Worksheet, data: LegerData) -> None:
    widths = [column.width for column in IDENTITY_COLUMNS]
    widths += [SUBJECT_WIDTH] * len(data.subjects)
    widths += [column.width for column in SUMMARY_COLUMNS]
    widths += [column.width for column in ATTENDANCE_COLUMNS]
    widths += [EXTRACURRICULAR_WIDTH] * len(data.extracurriculars)
    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width


def _write_legend(sheet: Worksheet, data: LegerData, start_row: int) -> None:
    if not data.subjects:
        return
    sheet.cell(row=start_row, column=2, value="Keterangan Mapel:").font = Font(bold=True)
    for offset, subject in enumerate(data.subjects, start=1):
        sheet.cell(row=start_row + offset, column=2, value=f"{subject.short_label} : {subject.nama}")
