from __future__ import annotations

import json
import runpy
import sys

import pytest

from rapor.bootstrap.container import build_container
from rapor.bootstrap.settings import Settings
from rapor.entrypoints.main import main
from tests.erapor_fixture import CLASS_ID, SEMESTER_ID

pytestmark = pytest.mark.usefixtures("restore_root_handlers")


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    monkeypatch.setenv("RAPOR_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr("faulthandler.enable", lambda *args, **kwargs: None)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)


@pytest.fixture
def container(erapor_executor, source_executor):
    source_executor.execute("CREATE TABLE refekstra_kurikuler (id_ekskul TEXT PRIMARY KEY, nm_ekskul TEXT)")
    source_executor.execute("INSERT INTO refekstra_kurikuler VALUES ('E9', 'Robotik')")
    return build_container(
        Settings(database_url="sqlite://", semester_id=SEMESTER_ID),
        destination=erapor_executor,
        source_factory=lambda: source_executor,
    )


def test_sync_prints_json_summary(container, capsys) -> None:
    code = main(["sync", "main.refekstra_kurikuler", "--json"], container=container)

    summary = json.loads(capsys.readouterr().out)
    assert code == 0
    assert summary["success"] is True
    assert summary["tablesSynced"] == 1
    assert summary["totalRecords"] == 1


def test_sync_failure_sets_exit_code(container, capsys) -> None:
    code = main(["sync", "main.tabel_tidak_ada"], container=container)

    out = capsys.readouterr().out
    assert code == 1
    assert "Tables synced: 1" in out
    assert "- Error syncing main.tabel_tidak_ada:" in out


def test_sync_requires_schema_dot_table(container) -> None:
    with pytest.raises(SystemExit) as exit_info:
        main(["sync", "refekstra_kurikuler"], container=container)

    assert exit_info.value.code == 2


def test_check_lists_source_schemas(container, capsys) -> None:
    code = main(["check"], container=container)

    catalog = json.loads(capsys.readouterr().out)
    assert code == 0
    assert catalog["schemas"][0]["tables"][0]["name"] == "refekstra_kurikuler"


def test_rapor_for_one_student_writes_pdf(container, tmp_path, capsys) -> None:
    code = main(["rapor", "--siswa", "S1", "--output", str(tmp_path)], container=container)

    path = tmp_path / "Nilai_Rapor_Budi_Santoso.pdf"
    assert code == 0
    assert capsys.readouterr().out.strip() == str(path)
    assert path.read_bytes().startswith(b"%PDF")


def test_rapor_for_class_writes_one_document(container, tmp_path) -> None:
    code = main(["rapor", "--kelas", CLASS_ID, "--output", str(tmp_path)], container=container)

    assert code == 0
    assert (tmp_path / "Nilai_Rapor_Kelas_X-1.pdf").is_file()


def test_unknown_student_exits_with_error(container, capsys) -> None:
    code = main(["rapor", "--siswa", "S404"], container=container)

    assert code == 1
    assert capsys.readouterr().err.strip() == "Error: Siswa S404 tidak ditemukan"


def test_pelengkap_writes_student_and_class_documents(container, tmp_path) -> None:
    student_code = main(["pelengkap", "--siswa", "S1", "--output", str(tmp_path)], container=container)
    class_code = main(["pelengkap", "--kelas", CLASS_ID, "--output", str(tmp_path)], container=container)

    assert (student_code, class_code) == (0, 0)
    assert (tmp_path / "Pelengkap_Siswa_Budi_Santoso.pdf").read_bytes().startswith(b"%PDF")
    assert (tmp_path / "Pelengkap_Kelas_X-1.pdf").is_file()


def test_leger_writes_workbook(container, tmp_path) -> None:
    code = main(["leger", "--kelas", CLASS_ID, "--output", str(tmp_path)], container=container)

    assert code == 0
    assert (tmp_path / "Leger_Nilai_X-1.xlsx").is_file()


def test_module_entrypoint_delegates_to_main(monkeypatch) -> None:
    monkeypatch.setattr("rapor.entrypoints.main.main", lambda: 0)

    with pytest.raises(SystemExit) as exit_info:
        runpy.run_module("rapor.__main__", run_name="__main__")

    assert exit_info.value.code == 0


def test_module_entrypoint_reports_incident_id(monkeypatch, capsys) -> None:
    def _boom() -> int:
        raise RuntimeError("unexpected")

    monkeypatch.setattr("rapor.entrypoints.main.main", _boom)

    with pytest.raises(SystemExit) as exit_info:
        runpy.run_module("rapor.__main__", run_name="__main__")

    assert exit_info.value.code == 2
    assert capsys.readouterr().err.startswith("Unexpected error. Incident ID: INC-")
