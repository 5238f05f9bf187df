from __future__ import annotations

import pytest

from rapor.domain.layout_models import MarginSettings
from rapor.domain.models import SignatureInfo, SubjectGrade, SubjectGroup
from rapor.pdf import sections
from rapor.pdf.canvas import PageCanvas
from rapor.pdf.table_layout import PageFlow


@pytest.fixture
def flow() -> PageFlow:
    return PageFlow(PageCanvas(), MarginSettings())


@pytest.mark.parametrize("nilai, predikat", [(95, "A"), (90, "A"), (85, "B"), (70, "C"), (60, "D"), (59.9, "E")])
def test_predikat(nilai, predikat) -> None:
    assert sections.predikat_for(nilai) == predikat


@pytest.mark.parametrize("tingkat, fase", [(10, "E"), ("11", "E"), (12, "F"), (9, "N/A"), (None, "N/A"), ("x", "N/A")])
def test_fase(tingkat, fase) -> None:
    assert sections.fase_for_tingkat(tingkat) == fase


def test_clean_group_name() -> None:
    assert sections.clean_group_name("mata pelajaran pilihan - IPA") == "Mata Pelajaran Pilihan"
    assert sections.clean_group_name("KELOMPOK A") == "Kelompok A"


def test_report_header_identity_and_title(flow, make_unit) -> None:
    y = sections.draw_report_header(flow, make_unit())

    texts = [op.text for op in flow.canvas.texts()]
    assert "BUDI SANTOSO" in texts
    assert "1001 / 0051" in texts
    assert "2025/2026" in texts
    assert sections.REPORT_TITLE in texts
    assert y == pytest.approx(50)


def test_grade_table_numbers_restart_per_group(flow) -> None:
    groups = (
        SubjectGroup("Kelompok A", (SubjectGrade("M1", "Agama", 85), SubjectGrade("M2", "Matematika", 90.5))),
        SubjectGroup("mata pelajaran pilihan - IPA", (SubjectGrade("M3", "Fisika", 88),)),
        SubjectGroup("Kosong", ()),
    )

    sections.draw_grade_table(flow, groups, 50)

    texts = [op.text for op in flow.canvas.texts()]
    assert "Mata Pelajaran Pilihan" in texts
    assert "Kosong" not in texts
    assert texts.count("1") == 2
    assert "90.5" in texts
    assert "85" in texts


def test_grade_table_without_grades_has_dash_row(flow) -> None:
    end = sections.draw_grade_table(flow, (), 50)

    assert end == 50 + 8 + 10
    assert [op.text for op in flow.canvas.texts()].count("-") == 4


def test_empty_kokurikuler_uses_default_text(flow) -> None:
    sections.draw_kokurikuler(flow, "  ", 100)

    assert sections.DEFAULT_KOKURIKULER_TEXT in [op.text for op in flow.canvas.texts()]


def test_attendance_and_note_share_top(flow, make_unit) -> None:
    end = sections.draw_attendance_and_note(flow, make_unit(), 100)

    texts = {op.text: op for op in flow.canvas.texts()}
    assert texts["Ketidakhadiran"].y == texts["Catatan Wali Kelas"].y
    assert ": 2 hari" in texts
    assert end == pytest.approx(100 + 9 + 18)


def test_signature_moves_to_new_page_when_it_does_not_fit(flow) -> None:
    signature = SignatureInfo(nama_wali_kelas="Ahmad", nama_kepala_sekolah="Siti", nama_sekolah="SMA 1")

    sections.draw_signature(flow, signature, 250)

    assert flow.canvas.current_page == 2
    texts = [op for op in flow.canvas.texts(2)]
    assert min(op.y for op in texts) == pytest.approx(41 + 5)
    assert max(op.y for op in texts) <= 41 + sections.SIGNATURE_BLOCK_HEIGHT
    assert "Kepala SMA 1" in [op.text for op in texts]
    assert "NIP. -" in [op.text for op in texts]


def test_footer_label_and_page_number(flow, make_unit) -> None:
    sections.draw_footer(flow.canvas, flow.margins, make_unit(), 3)

    texts = flow.canvas.texts()
    assert texts[0].text == "X-1 | BUDI SANTOSO | 1001"
    assert texts[0].font_name == "Courier-Bold"
    assert texts[1].text == "Halaman : 3"
    assert texts[1].align == "right"
    assert texts[0].y == 297 - 20 + 14
