from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from rapor.core.errors import LayoutError
from rapor.domain.layout_models import (
    ColumnSpec,
    MarginSettings,
    PageGeometry,
    RESERVED_HEADER_BAND_MM,
    RowMeasure,
    RowPlacement,
    TableStyle,
)
from rapor.pdf.canvas import PageCanvas

logger = logging.getLogger(__name__)

NO_DATA_LABEL = "-"
_NO_DATA = object()


class PageFlow:
    """Page-break arithmetic shared by every section of one document."""

    def __init__(
        self,
        canvas: PageCanvas,
        margins: MarginSettings,
        *,
        reserved_header_band: float = RESERVED_HEADER_BAND_MM,
        page: PageGeometry | None = None,
    ) -> None:
        self.canvas = canvas
        self.margins = margins
        self.reserved_header_band = reserved_header_band
        self.page = page or PageGeometry(canvas.width, canvas.height)

    @property
    def bottom_limit(self) -> float:
        return self.page.bottom_limit(self.margins)

    @property
    def content_width(self) -> float:
        return self.page.content_width(self.margins)

    @property
    def continuation_y(self) -> float:
        return self.margins.top + self.reserved_header_band

    def needs_page_break(self, y: float, height: float) -> bool:
        return y + height > self.bottom_limit

    def start_continuation_page(self) -> float:
        self.canvas.add_page()
        return self.continuation_y

    def ensure_space(self, y: float, height: float) -> float:
        if self.needs_page_break(y, height):
            return self.start_continuation_page()
        return y


class TableLayout:
    """Lays out one bordered table section row by row.

    Every cell of a row shares the height of its tallest column. Before a row
    is drawn the page-break test runs; on a break the column header is redrawn
    at the top of the new page and the row follows it.
    """

    def __init__(
        self,
        flow: PageFlow,
        columns: Sequence[ColumnSpec],
        *,
        style: TableStyle | None = None,
        x: float | None = None,
        width: float | None = None,
        show_header: bool = True,
    ) -> None:
        if not columns:
            raise LayoutError("A table needs at least one column")
        self.flow = flow
        self.canvas = flow.canvas
        self.columns = tuple(columns)
        self.style = style or TableStyle()
        self.x = flow.margins.left if x is None else x
        self.show_header = show_header
        self.widths = self._resolve_widths(width if width is not None else flow.page.width - flow.margins.right - self.x)
        self.width = sum(self.widths)
        self.placements: list[RowPlacement] = []
        self.header_placements: list[tuple[int, float]] = []
        self._row_index = 0

    @property
    def column_x(self) -> list[float]:
        positions = []
        cursor = self.x
        for width in self.widths:
            positions.append(cursor)
            cursor += width
        return positions

    def draw(self, y: float, records: Iterable[Any]) -> float:
        """Header plus rows; moves to a new page first if not even one row fits under the header."""

        header_height = self.style.header_height if self.show_header else 0.0
        y = self.flow.ensure_space(y, header_height + self.style.min_row_height)
        if self.show_header:
            y = self.draw_header(y)
        return self.draw_rows(y, records)

    def draw_header(self, y: float) -> float:
        style = self.style
        self.canvas.set_font("body", "bold", style.header_font_size)
        self.canvas.set_fill_color(style.header_fill)
        height = style.header_height
        for column, x, width in zip(self.columns, self.column_x, self.widths):
            self.canvas.rect(x, y, width, height, "FD")
            self.canvas.text(column.header_label, x + width / 2, y + height / 2 + height * 0.15, align="center")
        self.header_placements.append((self.canvas.current_page, y))
        return y + height

    def measure_row(self, record: Any) -> RowMeasure:
        style = self.style
        self.canvas.set_font("body", "normal", style.body_font_size)
        lines = []
        for column, text, width in zip(self.columns, self._cell_texts(record), self.widths):
            if column.wrap:
                lines.append(tuple(self.canvas.split_text_to_size(text, width - 2 * style.cell_padding)))
            else:
                lines.append((text,))
        max_lines = max(len(column_lines) for column_lines in lines)
        height = max(style.min_row_height, max_lines * style.line_height + style.vertical_padding)
        return RowMeasure(tuple(lines), height)

    def needs_page_break(self, y: float, height: float) -> bool:
        return self.flow.needs_page_break(y, height)

    def start_continuation_page(self) -> float:
        y = self.flow.start_continuation_page()
        logger.debug("Table continued on page %s", self.canvas.current_page)
        return y

    def draw_rows(self, y: float, records: Iterable[Any]) -> float:
        items = list(records)
        if not items:
            items = [_NO_DATA]
        for record in items:
            measure = self.measure_row(record)
            if self.needs_page_break(y, measure.height):
                y = self.start_continuation_page()
                if self.show_header:
                    y = self.draw_header(y)
            self.draw_row(y, measure)
            y += measure.height
        return y

    def draw_row(self, y: float, measure: RowMeasure) -> None:
        style = self.style
        self.canvas.set_font("body", "normal", style.body_font_size)
        for column, lines, x, width in zip(self.columns, measure.lines, self.column_x, self.widths):
            self.canvas.rect(x, y, width, measure.height)
            self._draw_cell(column, lines, x, y, width, measure.height)
        self.placements.append(RowPlacement(self._row_index, self.canvas.current_page, y, measure.height))
        self._row_index += 1

    def draw_group_row(self, y: float, label: str, *, height: float = 6.0) -> float:
        """Full-width label row, e.g. a subject group heading; kept together with the row below it."""

        if self.needs_page_break(y, height + self.style.min_row_height):
            y = self.start_continuation_page()
            if self.show_header:
                y = self.draw_header(y)
        self.canvas.set_font("body", "bold", self.style.body_font_size)
        self.canvas.rect(self.x, y, self.width, height)
        self.canvas.text(label, self.x + self.style.cell_padding, y + height / 2 + 1.2)
        return y + height

    def _draw_cell(self, column: ColumnSpec, lines: Sequence[str], x: float, y: float, width: float, height: float) -> None:
        style = self.style
        block_height = len(lines) * style.line_height
        if column.vertical == "middle":
            baseline = y + (height - block_height) / 2 + style.line_height * 0.75
        else:
            baseline = y + style.vertical_padding / 2 + style.line_height * 0.75

        if column.align == "center":
            anchor = x + width / 2
        elif column.align == "right":
            anchor = x + width - style.cell_padding
        else:
            anchor = x + style.cell_padding
        self.canvas.text(
            list(lines),
            anchor,
            baseline,
            align=column.align,
            max_width=width - 2 * style.cell_padding,
            line_height=style.line_height,
        )

    def _cell_texts(self, record: Any) -> list[str]:
        if record is _NO_DATA:
            return [NO_DATA_LABEL] * len(self.columns)
        return [column.value_of(record) for column in self.columns]

    def _resolve_widths(self, available: float) -> list[float]:
        fixed = sum(column.width_mm for column in self.columns if column.width_mm is not None)
        flexible = [column for column in self.columns if column.width_mm is None]
        if len(flexible) > 1:
            raise LayoutError("Only one column may take the remaining width")
        remainder = available - fixed
        if remainder < -1e-6 or (flexible and remainder <= 0):
            raise LayoutError(f"Columns need {fixed:.1f}mm but only {available:.1f}mm are available")
        return [column.width_mm if column.width_mm is not None else remainder for column in self.columns]


@dataclass(frozen=True)
class SectionBlock:
    """A section whose height is known before it is drawn."""

    height: float
    draw: Callable[[float], float]


class SideBySideLayout:
    """Two sections sharing one vertical span; they move to a new page together."""

    def __init__(self, flow: PageFlow) -> None:
        self.flow = flow
        self.broke_page = False

    def draw(self, y: float, left: SectionBlock, right: SectionBlock) -> float:
        needed = max(left.height, right.height)
        self.broke_page = self.flow.needs_page_break(y, needed)
        if self.broke_page:
            y = self.flow.start_continuation_page()
        return max(left.draw(y), right.draw(y))


class TextBlockLayout:
    """Titled single-cell box of free text that continues on the next page when it runs out of room."""

    def __init__(
        self,
        flow: PageFlow,
        *,
        title: str,
        x: float | None = None,
        width: float | None = None,
        header_height: float = 8.0,
        font_size: float = 8.0,
        padding: float = 3.0,
        line_height: float = 4.0,
        min_content_height: float = 15.0,
    ) -> None:
        self.flow = flow
        self.canvas = flow.canvas
        self.title = title
        self.x = flow.margins.left if x is None else x
        self.width = width if width is not None else flow.content_width
        self.header_height = header_height
        self.font_size = font_size
        self.padding = padding
        self.line_height = line_height
        self.min_content_height = min_content_height

    def split(self, text: str) -> list[str]:
        self.canvas.set_font("body", "normal", self.font_size)
        return self.canvas.split_text_to_size(text, self.width - 2 * self.padding)

    def content_height(self, lines: Sequence[str]) -> float:
        return max(self.min_content_height, len(lines) * self.line_height + 2 * self.padding)

    def draw(self, y: float, text: str) -> float:
        y = self.flow.ensure_space(y, self.header_height + self.line_height + 2 * self.padding)
        self.canvas.set_font("body", "bold", 9)
        self.canvas.set_line_width(0.3)
        self.canvas.rect(self.x, y, self.width, self.header_height)
        self.canvas.text(self.title, self.x + self.width / 2, y + self.header_height / 2 + 2.5, align="center")
        y += self.header_height

        lines = self.split(text)
        if not self.flow.needs_page_break(y, self.content_height(lines)):
            return self._draw_box(y, lines, self.content_height(lines))

        fresh_page = False
        while lines:
            fit = int((self.flow.bottom_limit - y - 2 * self.padding) // self.line_height)
            if fit <= 0:
                if not fresh_page:
                    y = self.flow.start_continuation_page()
                    fresh_page = True
                    continue
                # an empty continuation page cannot hold a line; overflow it instead of paging forever
                fit = 1
            chunk, lines = lines[:fit], lines[fit:]
            y = self._draw_box(y, chunk, len(chunk) * self.line_height + 2 * self.padding, justify_last=bool(lines))
            if lines:
                y = self.flow.start_continuation_page()
                fresh_page = True
        return y

    def _draw_box(self, y: float, lines: Sequence[str], height: float, *, justify_last: bool = False) -> float:
        self.canvas.set_font("body", "normal", self.font_size)
        self.canvas.rect(self.x, y, self.width, height)
        self.canvas.text(
            list(lines),
            self.x + self.padding,
            y + self.padding + 3,
            align="justify",
            max_width=self.width - 2 * self.padding,
            line_height=self.line_height,
            justify_last=justify_last,
        )
        return y + height
