from __future__ import annotations

import pytest

from rapor.pdf.canvas import LineOp, PageCanvas, RectOp, TextOp


def test_pages_stay_addressable() -> None:
    canvas = PageCanvas()

    assert canvas.current_page == 1
    assert canvas.add_page() == 2
    canvas.set_page(1)
    canvas.text("kembali", 20, 20)

    assert canvas.get_page_count() == 2
    assert [op.text for op in canvas.texts(1)] == ["kembali"]
    assert canvas.texts(2) == []
    with pytest.raises(IndexError):
        canvas.set_page(3)


def test_text_returns_next_baseline() -> None:
    canvas = PageCanvas()

    end = canvas.text(["a", "b", "c"], 10, 50, line_height=4)

    assert end == 62
    assert [op.y for op in canvas.texts()] == [50, 54, 58]


def test_split_text_to_size_wraps_to_width() -> None:
    canvas = PageCanvas()
    canvas.set_font("body", "normal", 9)
    text = "capaian kompetensi sangat baik " * 10

    lines = canvas.split_text_to_size(text, 40)

    assert len(lines) > 1
    assert all(canvas.get_text_width(line) <= 40 + 0.01 for line in lines)
    assert canvas.split_text_to_size("", 40) == [""]


def test_wider_text_measures_wider() -> None:
    canvas = PageCanvas()
    canvas.set_font("body", "bold", 10)

    assert canvas.get_text_width("WWWW") > canvas.get_text_width("iiii") > 0
    assert canvas.font_name == "Helvetica-Bold"


def test_justify_spreads_all_but_last_line() -> None:
    canvas = PageCanvas()

    canvas.text(["satu dua tiga", "empat lima"], 10, 10, align="justify", max_width=80)

    first, last = canvas.texts()
    assert first.align == "justify"
    assert first.word_gap is not None and first.word_gap > 0
    assert last.align == "left"


def test_shapes_are_recorded_with_current_state() -> None:
    canvas = PageCanvas()
    canvas.set_line_width(0.5)
    canvas.set_fill_color((240, 240, 240))

    canvas.rect(10, 10, 50, 8, "FD")
    canvas.line(10, 20, 60, 20)

    rect, line = canvas.operations()
    assert isinstance(rect, RectOp) and rect.style == "FD" and rect.fill_color == (240, 240, 240)
    assert isinstance(line, LineOp) and line.line_width == 0.5


def test_output_bytes_and_save_write_a_pdf(tmp_path) -> None:
    canvas = PageCanvas(title="Rapor")
    canvas.text("Halaman satu", 20, 20)
    canvas.add_page()
    canvas.text("Halaman dua", 105, 20, align="center")

    content = canvas.output_bytes()
    path = canvas.save(tmp_path / "out" / "rapor.pdf")

    assert content.startswith(b"%PDF")
    assert path.read_bytes().startswith(b"%PDF")


def test_text_op_keeps_font_state() -> None:
    canvas = PageCanvas()
    canvas.set_font("courier", "bold", 9)

    canvas.text("KELAS", 20, 280)

    assert canvas.texts()[0] == TextOp("KELAS", 20, 280, "left", "Courier-Bold", 9.0, None)


def test_unknown_font_family_is_rejected() -> None:
    with pytest.raises(ValueError):
        PageCanvas().set_font("comic", "normal")
