from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0
RESERVED_HEADER_BAND_MM = 21.0
DEFAULT_MARGIN_MM = 20.0
MIN_BODY_HEIGHT_MM = 70.0
MIN_CONTENT_WIDTH_MM = 100.0

Align = Literal["left", "center", "right", "justify"]
VerticalAlign = Literal["top", "middle"]


def _margin_value(row: Mapping[str, Any], key: str) -> float:
    value = row.get(key)
    if value is None or value == "":
        return DEFAULT_MARGIN_MM
    return float(value)


@dataclass(frozen=True)
class MarginSettings:
    top: float = DEFAULT_MARGIN_MM
    bottom: float = DEFAULT_MARGIN_MM
    left: float = DEFAULT_MARGIN_MM
    right: float = DEFAULT_MARGIN_MM

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None) -> "MarginSettings":
        if not row:
            return cls()
        return cls(
            top=_margin_value(row, "margin_top"),
            bottom=_margin_value(row, "margin_bottom"),
            left=_margin_value(row, "margin_left"),
            right=_margin_value(row, "margin_right"),
        )

    def validate(self, width: float = A4_WIDTH_MM, height: float = A4_HEIGHT_MM) -> "MarginSettings":
        """Rejects margins that leave no room for a continuation page's header band plus body."""

        for name, value in (("top", self.top), ("bottom", self.bottom), ("left", self.left), ("right", self.right)):
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"margin {name} harus angka >= 0")
        if width - self.left - self.right < MIN_CONTENT_WIDTH_MM:
            raise ValueError(f"lebar area isi kurang dari {MIN_CONTENT_WIDTH_MM:g} mm")
        body = height - self.bottom - (self.top + RESERVED_HEADER_BAND_MM)
        if body < MIN_BODY_HEIGHT_MM:
            raise ValueError(f"tinggi area isi kurang dari {MIN_BODY_HEIGHT_MM:g} mm")
        return self

    def to_dict(self) -> dict[str, float]:
        return {
            "margin_top": self.top,
            "margin_bottom": self.bottom,
            "margin_left": self.left,
            "margin_right": self.right,
        }


@dataclass(frozen=True)
class PageGeometry:
    width: float = A4_WIDTH_MM
    height: float = A4_HEIGHT_MM

    def content_width(self, margins: MarginSettings) -> float:
        return self.width - margins.left - margins.right

    def bottom_limit(self, margins: MarginSettings) -> float:
        return self.height - margins.bottom


@dataclass(frozen=True)
class ColumnSpec:
    """One column of a table section.

    ``width_mm=None`` makes the column absorb whatever width the fixed columns
    leave over inside the section width.
    """

    header_label: str
    width_mm: float | None
    accessor: Callable[[Any], Any] | str
    align: Align = "left"
    vertical: VerticalAlign = "top"
    wrap: bool = True

    def value_of(self, record: Any) -> str:
        if callable(self.accessor):
            value = self.accessor(record)
        elif isinstance(record, Mapping):
            value = record.get(self.accessor)
        else:
            value = getattr(record, self.accessor, None)
        if value is None or value == "":
            return "-"
        return str(value)


@dataclass(frozen=True)
class TableStyle:
    header_height: float = 8.0
    header_font_size: float = 9.0
    body_font_size: float = 9.0
    line_height: float = 3.7
    vertical_padding: float = 4.0
    min_row_height: float = 10.0
    cell_padding: float = 2.0
    header_fill: tuple[int, int, int] = (240, 240, 240)


@dataclass(frozen=True)
class RowMeasure:
    lines: tuple[tuple[str, ...], ...]
    height: float

    @property
    def max_lines(self) -> int:
        return max((len(column) for column in self.lines), default=0)


@dataclass(frozen=True)
class RowPlacement:
    index: int
    page: int
    y: float
    height: float


@dataclass(frozen=True)
class PageBracket:
    start_page: int
    end_page: int

    @property
    def pages(self) -> range:
        return range(self.start_page, self.end_page + 1)

    @property
    def page_count(self) -> int:
        return self.end_page - self.start_page + 1
