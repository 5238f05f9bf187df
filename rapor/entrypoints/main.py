from __future__ import annotations

import argparse
import faulthandler
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from rapor.application.use_cases.sync_tables.catalog import describe_source
from rapor.application.use_cases.sync_tables.reporting import render_summary_json, render_summary_text
from rapor.bootstrap.container import AppContainer, build_container
from rapor.bootstrap.logging import configure_logging, install_exception_hook
from rapor.bootstrap.settings import Settings, resolve_log_dir
from rapor.core.errors import AppError, ValidationError
from rapor.domain.layout_models import MarginSettings
from rapor.domain.sync_models import TableDescriptor
from rapor.excel.leger_workbook import build_leger_filename, build_leger_workbook
from rapor.pdf.pdf_builder import (
    build_class_filename,
    build_class_supplement_filename,
    build_report_filename,
    build_supplement_filename,
    write_report_cards,
    write_supplements,
)

logger = logging.getLogger(__name__)


def _table_descriptor(value: str) -> TableDescriptor:
    schema, _, table = value.partition(".")
    if not schema or not table:
        raise argparse.ArgumentTypeError(f"Expected schema.table, got {value!r}")
    return TableDescriptor(schema, table)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rapor", description="Rapor Sekolah back office")
    parser.add_argument("--verbose", action="store_true", help="Also log to stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the web API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)

    sync = commands.add_parser("sync", help="Sync tables from the local e-Rapor database")
    sync.add_argument("tables", nargs="+", type=_table_descriptor, metavar="SCHEMA.TABLE")
    sync.add_argument("--json", action="store_true", help="Print the summary as JSON")

    commands.add_parser("check", help="List schemas and tables of the local e-Rapor database")

    rapor = commands.add_parser("rapor", help="Render report cards to PDF")
    target = rapor.add_mutually_exclusive_group(required=True)
    target.add_argument("--siswa", help="peserta_didik_id of one student")
    target.add_argument("--kelas", help="rombongan_belajar_id of a whole class")
    rapor.add_argument("--ptk-id", help="Use the margin settings saved for this ptk_id")
    rapor.add_argument("--output", type=Path, default=Path.cwd())

    pelengkap = commands.add_parser("pelengkap", help="Render cover, identity and transfer pages to PDF")
    target = pelengkap.add_mutually_exclusive_group(required=True)
    target.add_argument("--siswa", help="peserta_didik_id of one student")
    target.add_argument("--kelas", help="rombongan_belajar_id of a whole class")
    pelengkap.add_argument("--ptk-id", help="Use the margin settings saved for this ptk_id")
    pelengkap.add_argument("--output", type=Path, default=Path.cwd())

    leger = commands.add_parser("leger", help="Export the class ledger to Excel")
    leger.add_argument("--kelas", required=True, help="rombongan_belajar_id")
    leger.add_argument("--output", type=Path, default=Path.cwd())
    return parser


def _run_sync(container: AppContainer, args: argparse.Namespace) -> int:
    summary = container.sync_orchestrator().run_to_summary(args.tables)
    rendered = render_summary_json(summary) if args.json else render_summary_text(summary)
    sys.stdout.write(rendered + "\n")
    return 0 if summary.success else 1


def _run_check(container: AppContainer) -> int:
    source = container.source_factory()
    try:
        source.ping()
        sys.stdout.write(json.dumps(describe_source(source), ensure_ascii=False, indent=2) + "\n")
    finally:
        source.dispose()
    return 0


def _output_path(output: Path, filename: str) -> Path:
    return output / filename if output.is_dir() else output


def _run_rapor(container: AppContainer, args: argparse.Namespace) -> int:
    margins = container.margin_settings.get(args.ptk_id) if args.ptk_id else MarginSettings()
    if args.siswa:
        units = [container.report_cards.build_unit(args.siswa)]
        filename = build_report_filename(units[0].student.nama)
    else:
        units = container.report_cards.build_class_units(args.kelas)
        filename = build_class_filename(units[0].student.nama_kelas or args.kelas)
    path = write_report_cards(units, _output_path(args.output, filename), margins)
    sys.stdout.write(f"{path}\n")
    return 0


def _run_pelengkap(container: AppContainer, args: argparse.Namespace) -> int:
    margins = container.margin_settings.get(args.ptk_id) if args.ptk_id else MarginSettings()
    if args.siswa:
        units = [container.supplements.build_unit(args.siswa)]
        filename = build_supplement_filename(units[0].student.nama)
    else:
        units = container.supplements.build_class_units(args.kelas)
        filename = build_class_supplement_filename(container.supplements.class_name(args.kelas))
    path = write_supplements(units, _output_path(args.output, filename), margins)
    sys.stdout.write(f"{path}\n")
    return 0


def _run_leger(container: AppContainer, args: argparse.Namespace) -> int:
    data = container.leger.build(args.kelas)
    path = _output_path(args.output, build_leger_filename(data.nama_kelas))
    path.parent.mkdir(parents=True, exist_ok=True)
    build_leger_workbook(data).save(path)
    sys.stdout.write(f"{path}\n")
    return 0


def main(argv: list[str] | None = None, *, container: AppContainer | None = None) -> int:
    args = _build_parser().parse_args(argv)
    load_dotenv()

    log_dir = resolve_log_dir()
    configure_logging(log_dir, console=args.verbose)
    install_exception_hook(log_dir)
    faulthandler.enable()
    logger.info("Log dir: %s", log_dir)

    try:
        container = container or build_container(Settings.from_env())
        if args.command == "serve":
            from rapor.web import create_app

            create_app(container).run(host=args.host, port=args.port, threaded=True)
            return 0
        if args.command == "sync":
            return _run_sync(container, args)
        if args.command == "check":
            return _run_check(container)
        if args.command == "rapor":
            return _run_rapor(container, args)
        if args.command == "pelengkap":
            return _run_pelengkap(container, args)
        if args.command == "leger":
            return _run_leger(container, args)
        raise ValidationError(f"Unknown command {args.command}")
    except AppError as exc:
        logger.error("Command failed: %s", exc, extra={"extra": {"command": args.command}})
        sys.stderr.write(f"Error: {exc}\n")
        return 1
