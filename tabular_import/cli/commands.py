from __future__ import annotations

import argparse
import dataclasses
import os
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from tabular_import.config.loader import ConfigError, load_config
from tabular_import.db.postgres import PostgresRecordStore, resolve_dsn
from tabular_import.db.store import MemoryRecordStore, PersistenceError, RecordStore
from tabular_import.logging.error_log import ErrorLogBuffer
from tabular_import.logging.init import get_logger, log_summary, set_debug, setup_logging
from tabular_import.models.config_models import ImportConfig
from tabular_import.models.records import ImportContext
from tabular_import.services.classifier import ClassificationError
from tabular_import.services.mapper import MappingError, MappingIncompleteError
from tabular_import.services.pipeline import ImportPlan, execute, prepare
from tabular_import.services.reporter import write_error_report
from tabular_import.services.summary import render_summary_line
from tabular_import.sheets.header import HeaderNotFoundError
from tabular_import.sheets.loader import EmptyInputError, ParseError, SheetSelectionError

"""CLI entrypoint.

Flow:
- Load .env (database settings), then the YAML config (packaged defaults
  when --config is not given)
- prepare(): load the file, find the header row, classify, auto-map
- Apply --map overrides, then execute() against PostgreSQL, or the
  in-memory store for --dry-run / DISABLE_DB_CONNECT=1 / no database
- Buffer failed rows to logs/errors-*.log, optionally write the
  re-uploadable error CSV, print the SUMMARY line

Exit codes: 0 every row imported or skipped, 2 at least one row failed or
the run was cancelled (Ctrl-C stops after the current batch), 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="tabular-import",
        description="Import a spreadsheet or CSV export into the matching business dataset",
    )
    p.add_argument("file", type=Path, help="CSV/TSV or XLSX file to import")
    p.add_argument("--sheet", help="Workbook sheet to import (required when there are several)")
    p.add_argument("--dataset", help="Dataset id, skipping automatic classification")
    p.add_argument(
        "--map", dest="mappings", action="append", default=[], metavar="KEY=HEADER",
        help="Map a field to a header (repeatable); KEY= leaves the field unmapped",
    )
    p.add_argument("--config", type=Path, help="YAML config (defaults to the packaged registry)")
    p.add_argument("--errors-out", type=Path, help="Write failed rows as a re-uploadable CSV")
    p.add_argument("--batch-size", type=int, help="Rows per batch (overrides config)")
    p.add_argument("--owner-id", help="Owner stamped on inserted rows; scopes duplicate detection")
    p.add_argument("--company-id", help="Company stamped on inserted rows")
    p.add_argument("--dry-run", action="store_true", help="Import into an in-memory store only")
    p.add_argument("--inspect", action="store_true", help="Print header, classification and mapping then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _parse_mappings(items: list[str]) -> dict[str, str | None]:
    overrides: dict[str, str | None] = {}
    for item in items:
        key, sep, header = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"invalid --map '{item}': expected KEY=HEADER")
        overrides[key.strip()] = header.strip() or None
    return overrides


def _with_batch_size(cfg: ImportConfig, batch_size: int | None) -> ImportConfig:
    if batch_size is None:
        return cfg
    if batch_size < 1:
        raise ValueError(f"--batch-size must be positive, got {batch_size}")
    return dataclasses.replace(cfg, pipeline=dataclasses.replace(cfg.pipeline, batch_size=batch_size))


def _open_store(cfg: ImportConfig, dry_run: bool) -> tuple[RecordStore, str]:
    logger = get_logger()
    if dry_run or os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("database disabled -> in-memory store")
        return MemoryRecordStore(), "memory"
    try:
        return PostgresRecordStore.connect(resolve_dsn(cfg.database)), "live"
    except PersistenceError as e:
        logger.warning(f"database unavailable -> in-memory store, nothing will be persisted: {e}")
        return MemoryRecordStore(), "memory"


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """SIGINT sets the cancel event; the importer stops at the next batch boundary."""
    logger = get_logger()
    event = threading.Event()

    def _handler(signum, frame):  # noqa: ARG001
        logger.warning("interrupt received, stopping after the current batch")
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield event
    finally:
        signal.signal(signal.SIGINT, previous)


def _inspect(plan: ImportPlan) -> int:
    print(f"FILE: {plan.source_name} SHEET: {plan.sheet_name}")
    print(f"  header_row={plan.detection.header_index} headers={list(plan.headers)}")
    print(f"  data_rows={len(plan.rows)} truncated={plan.truncated_rows}")
    scores = " ".join(f"{schema.id}={score}" for schema, score in plan.scores)
    print(f"  scores: {scores}")
    print(f"  dataset={plan.schema.id} store={plan.schema.store_id}")
    for key, header in plan.mapping.as_dict().items():
        marker = "*" if plan.schema.field(key).required else " "
        print(f"  {marker} {key} <- {header if header is not None else '-'}")
    missing = plan.mapping.unmapped_required()
    if missing:
        print(f"  unmapped required: {missing}")
    for row in plan.rows[:3]:
        print(f"  row {row.row_index}: {row.values}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # An explicit [] must not fall back to sys.argv (pytest arguments)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = _with_batch_size(load_config(args.config), args.batch_size)
        overrides = _parse_mappings(args.mappings)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FATAL

    source: Path = args.file
    if not source.is_file():
        logger.error(f"file not found: {source}")
        return EXIT_FATAL

    try:
        plan = prepare(source, cfg, sheet=args.sheet, dataset=args.dataset)
    except SheetSelectionError as e:
        if args.inspect:
            print(f"FILE: {source.name} sheets={e.sheet_names}")
            return EXIT_SUCCESS_ALL
        logger.error(f"{e}; available sheets: {', '.join(e.sheet_names)}")
        return EXIT_FATAL
    except (ParseError, EmptyInputError, HeaderNotFoundError, ClassificationError) as e:
        logger.error(f"{source.name}: {e}")
        return EXIT_FATAL

    try:
        for key, header in overrides.items():
            plan.mapping.override(key, header)
    except MappingError as e:
        logger.error(f"mapping: {e}")
        return EXIT_FATAL

    if args.inspect:
        return _inspect(plan)

    # Checked before connecting so a bad mapping never opens a transaction
    try:
        plan.mapping.ensure_complete()
    except MappingIncompleteError as e:
        logger.error(f"mapping: {e} (use --map KEY=HEADER)")
        return EXIT_FATAL

    store, mode = _open_store(cfg, args.dry_run)
    context = ImportContext(owner_id=args.owner_id, company_id=args.company_id)
    try:
        with _cancel_on_interrupt() as cancel:
            result = execute(plan, store, cfg, context=context, cancel_event=cancel)
    finally:
        if isinstance(store, PostgresRecordStore):
            store.close()

    report = result.report
    error_log = ErrorLogBuffer()
    error_log.add_report(report, file=source.name, sheet=plan.sheet_name)
    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")
    if args.errors_out is not None and report.failed_rows:
        write_error_report(report, plan.headers, args.errors_out)

    logger.info(f"mode={mode} dataset={plan.schema.id} store={plan.schema.store_id}")
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(report)[len("SUMMARY "):])

    if result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
