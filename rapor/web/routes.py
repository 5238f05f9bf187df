from __future__ import annotations

import io
import json
import logging
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from rapor.application.use_cases.sync_tables import authorize_admin, parse_sync_request
from rapor.application.use_cases.sync_tables.catalog import describe_source
from rapor.application.use_cases.sync_tables.orchestrator import CONNECTION_FAILED_MESSAGE
from rapor.application.use_cases.sync_tables.reporting import SSE_HEADERS, encode_sse, stream_sse
from rapor.bootstrap.container import AppContainer
from rapor.core.errors import AppError, ConfigurationError, ConnectivityError, NotFoundError, ValidationError
from rapor.core.operational_logging import log_operational_error
from rapor.domain.layout_models import MarginSettings
from rapor.domain.sync_models import ErrorEvent
from rapor.excel.leger_workbook import build_leger_filename, leger_workbook_bytes
from rapor.pdf.pdf_builder import (
    build_class_filename,
    build_class_supplement_filename,
    build_report_filename,
    build_supplement_filename,
    render_report_cards,
    render_supplements,
)

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

PDF_MIMETYPE = "application/pdf"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _container() -> AppContainer:
    return current_app.extensions["rapor.container"]


def _json_body() -> Any:
    raw = request.get_data(as_text=True)
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Invalid JSON in request body") from exc


def _margins_for_request() -> MarginSettings:
    ptk_id = request.args.get("ptk_id")
    if not ptk_id:
        return MarginSettings()
    return _container().margin_settings.get(ptk_id)


def _pdf_error(exc: Exception):
    log_operational_error("PDF generation failed", exc=exc)
    return jsonify(error=f"Gagal generate PDF: {exc}"), 500


@api.post("/sync/stream")
def sync_stream():
    try:
        sync_request = parse_sync_request(_json_body())
    except AppError as exc:
        body = encode_sse(ErrorEvent(str(exc)))
        return Response(body, mimetype="text/event-stream", headers=SSE_HEADERS)
    events = _container().sync_orchestrator().run(sync_request.tables)
    return Response(stream_sse(events), mimetype="text/event-stream", headers=SSE_HEADERS)


@api.post("/sync")
def sync_json():
    sync_request = parse_sync_request(_json_body())
    summary = _container().sync_orchestrator().run_to_summary(sync_request.tables)
    return jsonify(summary.to_dict()), 200


@api.post("/sync/check")
def sync_check():
    authorize_admin(_json_body())
    source = None
    try:
        source = _container().source_factory()
        source.ping()
        return jsonify(describe_source(source)), 200
    except ConfigurationError as exc:
        return jsonify(error=str(exc)), 500
    except ConnectivityError as exc:
        log_operational_error("Source database unreachable", exc=exc)
        return jsonify(error=CONNECTION_FAILED_MESSAGE, details=str(exc)), 500
    finally:
        if source is not None:
            source.dispose()


@api.get("/rapor/<peserta_didik_id>.pdf")
def report_card_pdf(peserta_didik_id: str):
    try:
        unit = _container().report_cards.build_unit(peserta_didik_id)
        content = render_report_cards([unit], _margins_for_request())
    except NotFoundError:
        raise
    except Exception as exc:  # noqa: BLE001
        return _pdf_error(exc)
    return send_file(
        io.BytesIO(content),
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=build_report_filename(unit.student.nama),
    )


@api.get("/rapor/kelas/<rombongan_belajar_id>.pdf")
def class_report_cards_pdf(rombongan_belajar_id: str):
    try:
        units = _container().report_cards.build_class_units(rombongan_belajar_id)
        content = render_report_cards(units, _margins_for_request())
    except NotFoundError:
        raise
    except Exception as exc:  # noqa: BLE001
        return _pdf_error(exc)
    return send_file(
        io.BytesIO(content),
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=build_class_filename(units[0].student.nama_kelas or rombongan_belajar_id),
    )


@api.get("/pelengkap/<peserta_didik_id>.pdf")
def supplement_pdf(peserta_didik_id: str):
    try:
        unit = _container().supplements.build_unit(peserta_didik_id)
        content = render_supplements([unit], _margins_for_request())
    except NotFoundError:
        raise
    except Exception as exc:  # noqa: BLE001
        return _pdf_error(exc)
    return send_file(
        io.BytesIO(content),
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=build_supplement_filename(unit.student.nama),
    )


@api.get("/pelengkap/kelas/<rombongan_belajar_id>.pdf")
def class_supplements_pdf(rombongan_belajar_id: str):
    try:
        units = _container().supplements.build_class_units(rombongan_belajar_id)
        kelas = _container().supplements.class_name(rombongan_belajar_id)
        content = render_supplements(units, _margins_for_request())
    except NotFoundError:
        raise
    except Exception as exc:  # noqa: BLE001
        return _pdf_error(exc)
    return send_file(
        io.BytesIO(content),
        mimetype=PDF_MIMETYPE,
        as_attachment=True,
        download_name=build_class_supplement_filename(kelas),
    )


@api.get("/leger/<rombongan_belajar_id>.xlsx")
def leger_xlsx(rombongan_belajar_id: str):
    data = _container().leger.build(rombongan_belajar_id)
    return send_file(
        io.BytesIO(leger_workbook_bytes(data)),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=build_leger_filename(data.nama_kelas),
    )


@api.get("/margin-settings")
def get_margin_settings():
    ptk_id = request.args.get("ptk_id")
    if not ptk_id:
        raise ValidationError("PTK ID harus diisi")
    return jsonify(_container().margin_settings.get(ptk_id).to_dict()), 200


@api.post("/margin-settings")
def save_margin_settings():
    payload = _json_body()
    if not isinstance(payload, dict) or not payload.get("ptk_id"):
        raise ValidationError("PTK ID harus diisi")
    try:
        margins = MarginSettings.from_row(payload)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Nilai margin tidak valid") from exc
    try:
        margins.validate()
    except ValueError as exc:
        raise ValidationError(f"Nilai margin tidak valid: {exc}") from exc
    _container().margin_settings.save(str(payload["ptk_id"]), margins)
    return jsonify(message="Margin settings berhasil disimpan", data=margins.to_dict()), 200
