from __future__ import annotations

import pytest

from rapor.core.errors import DocumentError
from rapor.domain.layout_models import MarginSettings, PageBracket
from rapor.domain.models import SchoolProfile, StudentIdentity, SupplementUnit
from rapor.pdf.canvas import PageCanvas
from rapor.pdf.composer import SupplementComposer
from rapor.pdf.supplement_pages import capitalize_words, format_long_date, identity_rows


def _unit(peserta_didik_id: str = "S1", nama: str = "Budi Santoso") -> SupplementUnit:
    return SupplementUnit(
        student=StudentIdentity(
            peserta_didik_id,
            nama,
            nis="1001",
            nisn="0051",
            tempat_lahir="Bandung",
            tanggal_lahir="2009-05-17",
            sekolah_asal="smp negeri 2 contoh",
            diterima_tanggal="2025-07-14",
            nama_ayah="AHMAD SANTOSO",
        ),
        school=SchoolProfile(
            "SMA Negeri 1 Contoh",
            npsn="20200001",
            kab_kota="Kota Bandung",
            nama_kepala_sekolah="Dra. Siti Aminah",
            nip_kepala_sekolah="197001012000032001",
        ),
    )


def _texts(canvas: PageCanvas, page: int) -> list[str]:
    return [op.text for op in canvas.texts(page)]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2009-05-17", "17 Mei 2009"),
        ("2025-07-14 00:00:00", "14 Juli 2025"),
        ("17 Agustus 2009", "17 Agustus 2009"),
        ("2009-13-01", "2009-13-01"),
        ("", ""),
    ],
)
def test_format_long_date(value, expected) -> None:
    assert format_long_date(value) == expected


def test_capitalize_words_and_signing_place() -> None:
    assert capitalize_words("siti RAHMA") == "Siti Rahma"
    assert SchoolProfile("X", kab_kota="Kab. Majalengka").signing_place == "Majalengka"
    assert SchoolProfile("X", kab_kota="Kota Bandung").signing_place == "Bandung"
    assert SchoolProfile("X", kab_kota="Bandung").signing_place == "Bandung"


def test_identity_rows_format_values() -> None:
    rows = {(number, label): value for number, label, value in identity_rows(_unit().student)}

    assert rows[("3.", "Tempat, Tanggal Lahir")] == "Bandung, 17 Mei 2009"
    assert rows[("10.", "Sekolah Asal")] == "SMP NEGERI 2 CONTOH"
    assert rows[("", "Di kelas")] == "X"
    assert rows[("", "Pada tanggal")] == "14 Juli 2025"
    assert rows[("", "a. Ayah")] == "Ahmad Santoso"


def test_each_student_gets_five_pages_in_book_order() -> None:
    canvas = PageCanvas()

    brackets = SupplementComposer(canvas).compose_batch([_unit(), _unit("S2", "Ani Lestari")])

    assert brackets == [PageBracket(1, 5), PageBracket(6, 10)]
    assert canvas.get_page_count() == 10
    assert "BUDI SANTOSO" in _texts(canvas, 1)
    assert "0051 / 1001" in _texts(canvas, 1)
    assert "20200001" in _texts(canvas, 2)
    assert "IDENTITAS PESERTA DIDIK" in _texts(canvas, 3)
    assert "KELUAR" in _texts(canvas, 4)
    assert "MASUK" in _texts(canvas, 5)
    assert "ANI LESTARI" in _texts(canvas, 6)


def test_identity_page_has_photo_box_and_principal_signature() -> None:
    canvas = PageCanvas()

    SupplementComposer(canvas).compose(_unit())

    texts = _texts(canvas, 3)
    assert "Foto 3x4" in texts
    assert "Bandung, 14 Juli 2025" in texts
    assert "NIP. 197001012000032001" in texts


def test_transfer_forms_drop_rows_that_do_not_fit() -> None:
    roomy, tight = PageCanvas(), PageCanvas()

    SupplementComposer(roomy).compose(_unit())
    SupplementComposer(tight, MarginSettings(top=60, bottom=60)).compose(_unit())

    assert _texts(roomy, 4).count("Kepala Sekolah,") == 3
    assert _texts(roomy, 5).count("Kepala Sekolah,") == 3
    assert _texts(tight, 4).count("Kepala Sekolah,") == 1
    assert _texts(tight, 5).count("Kepala Sekolah,") == 2
    for canvas in (roomy, tight):
        assert all(op.y <= canvas.height for op in canvas.texts(4))


def test_compose_batch_rejects_empty_input() -> None:
    with pytest.raises(DocumentError):
        SupplementComposer(PageCanvas()).compose_batch([])
