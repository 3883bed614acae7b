from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from ..config.loader import load_config
from ..db.store import RecordStore
from ..models.config_models import DatasetSchema, ImportConfig
from ..models.processing_result import ImportReport
from ..models.records import ImportContext
from ..models.row_data import DataRow
from ..models.sheet_table import HeaderDetection, RawTable
from ..sheets.header import detect_header
from ..sheets.loader import load_path
from .classifier import ClassificationError, classify, score_schemas
from .importer import BatchImporter, ProgressCallback
from .mapper import ColumnMapping, auto_map
from .reporter import REPORT_COLUMNS, build_error_frame
from .validator import ParseOptions, ValidationSummary, validate_rows

"""Headless pipeline: load -> detect -> classify -> map -> validate -> import.

prepare() runs every step that needs no store and returns an ImportPlan a
caller can inspect and adjust (dataset, mapping overrides). execute()
freezes the mapping and commits. Fatal errors (ParseError, EmptyInputError,
SheetSelectionError, HeaderNotFoundError, MappingIncompleteError) are raised
before the store is touched.
"""

__all__ = [
    "ImportPlan",
    "PipelineResult",
    "execute",
    "prepare",
    "run_pipeline",
]

logger = logging.getLogger(__name__)


def _mappable(headers: tuple[str, ...]) -> list[str]:
    # row_index / reason come from a re-uploaded error report
    return [h for h in headers if h not in REPORT_COLUMNS]


@dataclass
class ImportPlan:
    """Everything decided before import; mapping stays editable until execute()."""
    table: RawTable
    detection: HeaderDetection
    schema: DatasetSchema
    scores: list[tuple[DatasetSchema, int]]
    mapping: ColumnMapping

    @property
    def headers(self) -> tuple[str, ...]:
        return self.detection.headers

    @property
    def rows(self) -> tuple[DataRow, ...]:
        return self.detection.rows

    @property
    def truncated_rows(self) -> int:
        return self.detection.truncated_rows

    @property
    def sheet_name(self) -> str:
        return self.table.sheet_name

    @property
    def source_name(self) -> str:
        return self.table.source_name

    def use_schema(self, schema: DatasetSchema, exclusive: bool | None = None) -> None:
        """Reassign the dataset type; the mapping is detected again for it.

        exclusive defaults to the current mapping's setting.
        """
        if exclusive is None:
            exclusive = self.mapping.exclusive
        self.schema = schema
        self.mapping = auto_map(_mappable(self.headers), schema, exclusive=exclusive)


@dataclass(frozen=True)
class PipelineResult:
    plan: ImportPlan
    validation: ValidationSummary
    report: ImportReport

    @property
    def has_failures(self) -> bool:
        return self.report.failed_count > 0 or self.report.cancelled

    def error_frame(self) -> pd.DataFrame:
        return build_error_frame(self.report, self.plan.headers)


def _resolve_schema(config: ImportConfig, dataset: str | None, headers: list[str]) -> DatasetSchema:
    if dataset is None:
        return classify(headers, config.registry)
    try:
        return config.schema(dataset)
    except KeyError:
        known = ", ".join(s.id for s in config.registry)
        raise ClassificationError(f"unknown dataset '{dataset}' (known: {known})") from None


def prepare(
    source: Path | str | RawTable,
    config: ImportConfig,
    sheet: str | None = None,
    dataset: str | None = None,
) -> ImportPlan:
    """Load source and build the ImportPlan.

    Args:
        source: File path, or a RawTable already loaded with load_table()
        config: Pipeline settings and schema registry
        sheet: Workbook sheet (required when the workbook has several)
        dataset: Dataset id overriding classification
    """
    table = source if isinstance(source, RawTable) else load_path(Path(source), sheet=sheet)
    settings = config.pipeline
    detection = detect_header(table, scan_rows=settings.header_scan_rows, row_cap=settings.row_cap)
    headers = _mappable(detection.headers)
    schema = _resolve_schema(config, dataset, headers)
    mapping = auto_map(headers, schema, exclusive=settings.exclusive_mapping)
    logger.info(
        "prepared '%s' sheet=%s header_row=%d rows=%d dataset=%s",
        table.source_name or table.sheet_name, table.sheet_name,
        detection.header_index, len(detection.rows), schema.id,
    )
    return ImportPlan(
        table=table,
        detection=detection,
        schema=schema,
        scores=score_schemas(headers, config.registry),
        mapping=mapping,
    )


def execute(
    plan: ImportPlan,
    store: RecordStore,
    config: ImportConfig,
    context: ImportContext | None = None,
    cancel_event: threading.Event | None = None,
    on_progress: ProgressCallback | None = None,
) -> PipelineResult:
    """Validate and import plan's rows into store.

    Raises:
        MappingIncompleteError: a required field is unmapped (nothing is committed)
    """
    plan.mapping.ensure_complete()
    mapping = plan.mapping.freeze()
    settings = config.pipeline
    validation = validate_rows(plan.rows, mapping, plan.schema, ParseOptions.from_config(settings))
    importer = BatchImporter(
        store,
        batch_size=settings.batch_size,
        pause_seconds=settings.pause_seconds,
        context=context,
        cancel_event=cancel_event,
        on_progress=on_progress,
    )
    report = importer.run(plan.rows, validation.outcomes, plan.schema, truncated_rows=plan.truncated_rows)
    return PipelineResult(plan=plan, validation=validation, report=report)


def run_pipeline(
    source: Path | str | RawTable,
    store: RecordStore,
    config: ImportConfig | None = None,
    *,
    sheet: str | None = None,
    dataset: str | None = None,
    overrides: Mapping[str, str | None] | None = None,
    context: ImportContext | None = None,
    cancel_event: threading.Event | None = None,
    on_progress: ProgressCallback | None = None,
) -> PipelineResult:
    """prepare() + mapping overrides + execute() in one call."""
    config = config or load_config()
    plan = prepare(source, config, sheet=sheet, dataset=dataset)
    for key, header in (overrides or {}).items():
        plan.mapping.override(key, header)
    return execute(plan, store, config, context=context, cancel_event=cancel_event, on_progress=on_progress)
