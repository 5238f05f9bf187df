from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from rapor.core.errors import DocumentError
from rapor.core.metrics import measure_time
from rapor.domain.layout_models import MarginSettings
from rapor.domain.models import ReportCardUnit, SupplementUnit
from rapor.pdf.canvas import PageCanvas
from rapor.pdf.composer import ReportCardComposer, SupplementComposer

logger = logging.getLogger(__name__)


def build_report_filename(student_name: str) -> str:
    return f"Nilai_Rapor_{_sanitize_filename(student_name)}.pdf"


def build_class_filename(class_name: str) -> str:
    return f"Nilai_Rapor_Kelas_{_sanitize_filename(class_name)}.pdf"


def build_supplement_filename(student_name: str) -> str:
    return f"Pelengkap_Siswa_{_sanitize_filename(student_name)}.pdf"


def build_class_supplement_filename(class_name: str) -> str:
    return f"Pelengkap_Kelas_{_sanitize_filename(class_name)}.pdf"


@measure_time("pdf.render_report_cards")
def render_report_cards(units: Iterable[ReportCardUnit], margins: MarginSettings | None = None) -> bytes:
    units_list = list(units)
    if not units_list:
        raise DocumentError("Tidak ada data rapor untuk digenerate")
    title = units_list[0].student.nama if len(units_list) == 1 else "Nilai Rapor"
    canvas = PageCanvas(title=title)
    brackets = ReportCardComposer(canvas, margins).compose_batch(units_list)
    logger.info(
        "Report card PDF rendered",
        extra={"extra": {"units": len(brackets), "pages": canvas.get_page_count()}},
    )
    return canvas.output_bytes()


def write_report_cards(
    units: Iterable[ReportCardUnit], target: Path, margins: MarginSettings | None = None
) -> Path:
    target = _ensure_pdf_extension(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(render_report_cards(units, margins))
    return target


@measure_time("pdf.render_supplements")
def render_supplements(units: Iterable[SupplementUnit], margins: MarginSettings | None = None) -> bytes:
    units_list = list(units)
    if not units_list:
        raise DocumentError("Tidak ada data siswa untuk digenerate")
    title = units_list[0].student.nama if len(units_list) == 1 else "Pelengkap Rapor"
    canvas = PageCanvas(title=title)
    brackets = SupplementComposer(canvas, margins).compose_batch(units_list)
    logger.info(
        "Report book supplement PDF rendered",
        extra={"extra": {"units": len(brackets), "pages": canvas.get_page_count()}},
    )
    return canvas.output_bytes()


def write_supplements(
    units: Iterable[SupplementUnit], target: Path, margins: MarginSettings | None = None
) -> Path:
    target = _ensure_pdf_extension(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(render_supplements(units, margins))
    return target


def _sanitize_filename(name: str) -> str:
    replacements = {"/": "-", "\\": "-", " ": "_"}
    for old, new in replacements.items():
        name = name.replace(old, new)
    return name


def _ensure_pdf_extension(path: Path) -> Path:
    if path.suffix.lower() != ".pdf":
        return path.with_suffix(".pdf")
    return path
