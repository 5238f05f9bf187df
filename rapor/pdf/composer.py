from __future__ import annotations

import logging
from collections.abc import Iterable

from rapor.core.errors import DocumentError, LayoutError
from rapor.domain.layout_models import MarginSettings, PageBracket
from rapor.domain.models import ReportCardUnit, SupplementUnit
from rapor.pdf import sections, supplement_pages
from rapor.pdf.canvas import PageCanvas
from rapor.pdf.table_layout import PageFlow

logger = logging.getLogger(__name__)


class ReportCardComposer:
    """Lays out report cards onto one canvas in two passes.

    The first pass flows the body sections and remembers which pages each
    report card occupies. The second pass revisits those pages to add the
    running identity strip and the numbered footer, which depend on the final
    page count of the card.
    """

    def __init__(self, canvas: PageCanvas, margins: MarginSettings | None = None) -> None:
        self.canvas = canvas
        self.margins = margins or MarginSettings()
        self.flow = PageFlow(canvas, self.margins)
        self._composed: list[tuple[ReportCardUnit, PageBracket]] = []

    def compose(self, unit: ReportCardUnit) -> PageBracket:
        bracket = self.compose_body(unit)
        self.decorate(unit, bracket)
        return bracket

    def compose_batch(self, units: Iterable[ReportCardUnit]) -> list[PageBracket]:
        placed = [(unit, self.compose_body(unit)) for unit in units]
        if not placed:
            raise DocumentError("Tidak ada data rapor untuk digenerate")
        for unit, bracket in placed:
            self.decorate(unit, bracket)
        return [bracket for _, bracket in placed]

    def compose_body(self, unit: ReportCardUnit) -> PageBracket:
        if self._composed:
            self.canvas.add_page()
        start_page = self.canvas.current_page
        try:
            y = sections.draw_report_header(self.flow, unit)
            y = sections.draw_grade_table(self.flow, unit.groups, y)
            y = sections.draw_kokurikuler(self.flow, unit.kokurikuler, y + sections.SECTION_GAP)
            y = sections.draw_extracurricular_table(self.flow, unit.extracurriculars, y + sections.SECTION_GAP)
            y = sections.draw_attendance_and_note(self.flow, unit, y + sections.SECTION_GAP)
            y = sections.draw_parent_response(self.flow, y + sections.SECTION_GAP)
            sections.draw_signature(self.flow, unit.signature, y)
        except LayoutError as exc:
            raise DocumentError(f"Gagal menyusun rapor {unit.student.nama}: {exc}") from exc
        bracket = PageBracket(start_page, self.canvas.current_page)
        self._composed.append((unit, bracket))
        logger.info(
            "Report card laid out",
            extra={
                "extra": {
                    "peserta_didik_id": unit.student.peserta_didik_id,
                    "start_page": bracket.start_page,
                    "page_count": bracket.page_count,
                }
            },
        )
        return bracket

    def decorate(self, unit: ReportCardUnit, bracket: PageBracket) -> None:
        last_page = self.canvas.current_page
        for page in bracket.pages:
            self.canvas.set_page(page)
            if page != bracket.start_page:
                sections.draw_running_strip(self.canvas, self.margins, unit)
            sections.draw_footer(self.canvas, self.margins, unit, page - bracket.start_page + 1)
        self.canvas.set_page(last_page)


class SupplementComposer:
    """Cover, school profile, identity and the two transfer forms; one page each, in book order."""

    pages = (
        supplement_pages.draw_cover_page,
        supplement_pages.draw_school_info_page,
        supplement_pages.draw_identity_page,
        supplement_pages.draw_transfer_out_page,
        supplement_pages.draw_transfer_in_page,
    )

    def __init__(self, canvas: PageCanvas, margins: MarginSettings | None = None) -> None:
        self.canvas = canvas
        self.margins = margins or MarginSettings()
        self.flow = PageFlow(canvas, self.margins)
        self._count = 0

    def compose(self, unit: SupplementUnit) -> PageBracket:
        start_page = self.canvas.current_page + 1 if self._count else self.canvas.current_page
        for index, draw in enumerate(self.pages):
            if self._count or index:
                self.canvas.add_page()
            draw(self.flow, unit)
        self._count += 1
        bracket = PageBracket(start_page, self.canvas.current_page)
        logger.info(
            "Report book supplement laid out",
            extra={"extra": {"peserta_didik_id": unit.student.peserta_didik_id, "start_page": start_page}},
        )
        return bracket

    def compose_batch(self, units: Iterable[SupplementUnit]) -> list[PageBracket]:
        brackets = [self.compose(unit) for unit in units]
        if not brackets:
            raise DocumentError("Tidak ada data siswa untuk digenerate")
        return brackets
