from __future__ import annotations

import io
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Literal, Sequence, Union

from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as rl_canvas

from rapor.domain.layout_models import A4_HEIGHT_MM, A4_WIDTH_MM, Align
from rapor.pdf.fonts import resolve_font_name

PT_TO_MM = 25.4 / 72
DEFAULT_LINE_HEIGHT_FACTOR = 1.15
SPLIT_CACHE_SIZE = 500

RectStyle = Literal["S", "F", "FD"]
Color = tuple[int, int, int]


@dataclass(frozen=True)
class TextOp:
    text: str
    x: float
    y: float
    align: Align
    font_name: str
    font_size: float
    max_width: float | None = None
    word_gap: float | None = None


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    style: RectStyle
    fill_color: Color
    line_width: float


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    line_width: float


DrawOp = Union[TextOp, RectOp, LineOp]


@lru_cache(maxsize=SPLIT_CACHE_SIZE)
def _split_cached(text: str, font_name: str, font_size: float, max_width_mm: float) -> tuple[str, ...]:
    lines = simpleSplit(text, font_name, font_size, max_width_mm / PT_TO_MM)
    return tuple(lines) or ("",)


class PageCanvas:
    """Millimetre drawing surface with a top-left origin.

    Drawing calls are recorded per page and only rendered through reportlab on
    ``save``/``output_bytes``, so pages stay addressable (``set_page``) after
    they were filled. That is what lets running headers and footers be added
    once the final page count is known.
    """

    def __init__(self, width: float = A4_WIDTH_MM, height: float = A4_HEIGHT_MM, *, title: str = "") -> None:
        self.width = width
        self.height = height
        self.title = title
        self._pages: list[list[DrawOp]] = [[]]
        self._current = 1
        self._font_name = resolve_font_name("body")
        self._font_size = 10.0
        self._line_width = 0.2
        self._fill_color: Color = (255, 255, 255)

    @property
    def current_page(self) -> int:
        return self._current

    @property
    def font_name(self) -> str:
        return self._font_name

    @property
    def font_size(self) -> float:
        return self._font_size

    def add_page(self) -> int:
        self._pages.append([])
        self._current = len(self._pages)
        return self._current

    def set_page(self, page: int) -> None:
        if not 1 <= page <= len(self._pages):
            raise IndexError(f"Page {page} does not exist (document has {len(self._pages)})")
        self._current = page

    def get_page_count(self) -> int:
        return len(self._pages)

    def operations(self, page: int | None = None) -> list[DrawOp]:
        return list(self._pages[(page or self._current) - 1])

    def texts(self, page: int | None = None) -> list[TextOp]:
        return [op for op in self.operations(page) if isinstance(op, TextOp)]

    def set_font(self, family: str = "body", weight: str = "normal", size: float | None = None) -> None:
        self._font_name = resolve_font_name(family, weight)
        if size is not None:
            self._font_size = float(size)

    def set_font_size(self, size: float) -> None:
        self._font_size = float(size)

    def set_line_width(self, width: float) -> None:
        self._line_width = width

    def set_fill_color(self, color: Color) -> None:
        self._fill_color = color

    def get_text_width(self, text: str) -> float:
        return stringWidth(text, self._font_name, self._font_size) * PT_TO_MM

    def split_text_to_size(self, text: str, max_width: float) -> list[str]:
        return list(_split_cached(text, self._font_name, self._font_size, round(max_width, 3)))

    def line_spacing(self) -> float:
        return self._font_size * DEFAULT_LINE_HEIGHT_FACTOR * PT_TO_MM

    def rect(self, x: float, y: float, width: float, height: float, style: RectStyle | None = None) -> None:
        self._record(RectOp(x, y, width, height, style or "S", self._fill_color, self._line_width))

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self._record(LineOp(x1, y1, x2, y2, self._line_width))

    def text(
        self,
        content: str | Sequence[str],
        x: float,
        y: float,
        *,
        align: Align = "left",
        max_width: float | None = None,
        line_height: float | None = None,
        justify_last: bool = False,
    ) -> float:
        """Places text with ``y`` as the first baseline; returns the baseline after the last line."""

        if isinstance(content, str):
            lines = self.split_text_to_size(content, max_width) if max_width else content.split("\n")
        else:
            lines = list(content)
        step = line_height if line_height is not None else self.line_spacing()
        for index, line in enumerate(lines):
            baseline = y + index * step
            is_last = index == len(lines) - 1
            if align == "justify" and max_width and (justify_last or not is_last):
                self._record(self._justified(line, x, baseline, max_width))
            else:
                effective = "left" if align == "justify" else align
                self._record(TextOp(line, x, baseline, effective, self._font_name, self._font_size, max_width))
        return y + len(lines) * step

    def output_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self._render(buffer)
        return buffer.getvalue()

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.output_bytes())
        return path

    def _justified(self, line: str, x: float, y: float, max_width: float) -> TextOp:
        words = line.split()
        gap = None
        if len(words) > 1:
            words_width = sum(stringWidth(word, self._font_name, self._font_size) for word in words) * PT_TO_MM
            gap = max(0.0, (max_width - words_width) / (len(words) - 1))
        return TextOp(" ".join(words), x, y, "justify", self._font_name, self._font_size, max_width, gap)

    def _record(self, op: DrawOp) -> None:
        self._pages[self._current - 1].append(op)

    def _render(self, target: io.BytesIO) -> None:
        pdf = rl_canvas.Canvas(target, pagesize=(self.width * mm, self.height * mm))
        if self.title:
            pdf.setTitle(self.title)
        for page_ops in self._pages:
            for op in page_ops:
                if isinstance(op, TextOp):
                    self._render_text(pdf, op)
                elif isinstance(op, RectOp):
                    self._render_rect(pdf, op)
                else:
                    pdf.setLineWidth(op.line_width * mm)
                    pdf.line(op.x1 * mm, self._flip(op.y1), op.x2 * mm, self._flip(op.y2))
            pdf.showPage()
        pdf.save()

    def _render_text(self, pdf: rl_canvas.Canvas, op: TextOp) -> None:
        pdf.setFont(op.font_name, op.font_size)
        x, y = op.x * mm, self._flip(op.y)
        if op.align == "center":
            pdf.drawCentredString(x, y, op.text)
        elif op.align == "right":
            pdf.drawRightString(x, y, op.text)
        elif op.align == "justify" and op.word_gap is not None:
            cursor = x
            for word in op.text.split():
                pdf.drawString(cursor, y, word)
                cursor += stringWidth(word, op.font_name, op.font_size) + op.word_gap * mm
        else:
            pdf.drawString(x, y, op.text)

    def _render_rect(self, pdf: rl_canvas.Canvas, op: RectOp) -> None:
        pdf.setLineWidth(op.line_width * mm)
        red, green, blue = op.fill_color
        pdf.setFillColorRGB(red / 255, green / 255, blue / 255)
        pdf.rect(
            op.x * mm,
            self._flip(op.y + op.height),
            op.width * mm,
            op.height * mm,
            stroke=1 if op.style in ("S", "FD") else 0,
            fill=1 if op.style in ("F", "FD") else 0,
        )
        pdf.setFillColorRGB(0, 0, 0)

    def _flip(self, y: float) -> float:
        return (self.height - y) * mm
