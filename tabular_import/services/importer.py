from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from ..db.store import DuplicateRecordError, PersistenceError, RecordStore, store_lock
from ..models.config_models import DatasetSchema
from ..models.processing_result import (
    PERSISTENCE_ERROR,
    VALIDATION_FAILED,
    BatchStatsAccumulator,
    ImportRecord,
    ImportReport,
    ValidationOutcome,
)
from ..models.records import ImportContext, build_record
from ..models.row_data import DataRow
from .progress import ProgressTracker
from .validator import RowValidationError

"""BatchImporter: validated rows -> target store, with dedup.

Rows are committed in sequential batches; inside a batch they are handled
one at a time so the duplicate lookup of one row always sees the insert of
the previous one. Between batches the importer pauses briefly, reports
progress and honours a cancellation request. Rows already committed stay
committed; there are no retries within a run.

The lookup-then-insert sequence is not atomic, so the whole run holds a
per-store lock and a uniqueness violation reported by the store is counted
as a duplicate, not a failure.
"""

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "BatchImporter",
    "ProgressCallback",
]

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_PAUSE_SECONDS = 0.01

ProgressCallback = Callable[[int, int], None]


class BatchImporter:
    """Commit rows for one schema into a RecordStore and report per-row outcomes."""

    def __init__(
        self,
        store: RecordStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        context: ImportContext | None = None,
        cancel_event: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.store = store
        self.batch_size = batch_size
        self.pause_seconds = pause_seconds
        self.context = context or ImportContext()
        self.cancel_event = cancel_event
        self.on_progress = on_progress

    def _scoped_key(self, key: dict[str, Any]) -> dict[str, Any]:
        if self.context.owner_id is None:
            return key
        return {"user_id": self.context.owner_id, **key}

    def _stamp(self, row: dict[str, Any]) -> dict[str, Any]:
        if self.context.owner_id is not None:
            row["user_id"] = self.context.owner_id
        if self.context.company_id is not None:
            row["company_id"] = self.context.company_id
        return row

    def _commit(self, outcome: ValidationOutcome, schema: DatasetSchema) -> ImportRecord:
        try:
            if not outcome.valid:
                raise RowValidationError(outcome)
            record = build_record(schema.kind, outcome.parsed_values)
            if self.store.find_one(schema.store_id, self._scoped_key(record.natural_key())) is not None:
                return ImportRecord.duplicate()
            self.store.insert(schema.store_id, self._stamp(record.to_row()))
        except RowValidationError as e:
            return ImportRecord.failed(str(e), VALIDATION_FAILED)
        except DuplicateRecordError:
            return ImportRecord.duplicate()
        except PersistenceError as e:
            logger.debug("row %d rejected by store: %s", outcome.row_index, e)
            return ImportRecord.failed(str(e) or "store error", PERSISTENCE_ERROR)
        return ImportRecord.imported()

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def run(
        self,
        rows: Sequence[DataRow],
        outcomes: Sequence[ValidationOutcome],
        schema: DatasetSchema,
        truncated_rows: int = 0,
    ) -> ImportReport:
        """Import rows (with their validation outcomes, same order) into schema's store."""
        if len(rows) != len(outcomes):
            raise ValueError(f"{len(rows)} rows but {len(outcomes)} validation outcomes")
        for row, outcome in zip(rows, outcomes):
            if row.row_index != outcome.row_index:
                raise ValueError(f"outcome for row {outcome.row_index} paired with row {row.row_index}")

        total = len(rows)
        report = ImportReport(
            dataset_id=schema.id,
            store_id=schema.store_id,
            total_rows=total,
            truncated_rows=truncated_rows,
            start_time=datetime.now(UTC),
        )
        stats = BatchStatsAccumulator()
        logger.info("importing dataset=%s store=%s rows=%d batch_size=%d",
                    schema.id, schema.store_id, total, self.batch_size)

        with store_lock(schema.store_id), ProgressTracker(total) as progress:
            for start in range(0, total, self.batch_size):
                if self._cancelled():
                    report.cancelled = True
                    logger.warning("import cancelled after %d/%d rows", start, total)
                    break
                batch_start = time.perf_counter()
                end = min(start + self.batch_size, total)
                for row, outcome in zip(rows[start:end], outcomes[start:end]):
                    report.record(row.row_index, self._commit(outcome, schema), row.values)
                stats.add_batch_time(time.perf_counter() - batch_start)

                progress.advance(end - start)
                progress.set_postfix(imported=report.imported_count,
                                     skipped=report.skipped_count,
                                     failed=report.failed_count)
                if self.on_progress is not None:
                    self.on_progress(end, total)
                if end < total and self.pause_seconds > 0:
                    time.sleep(self.pause_seconds)

        report.total_batches, report.avg_batch_seconds, report.p95_batch_seconds = stats.get_stats()
        report.end_time = datetime.now(UTC)
        logger.info(
            "import finished dataset=%s imported=%d skipped=%d failed=%d%s",
            schema.id, report.imported_count, report.skipped_count, report.failed_count,
            " (cancelled)" if report.cancelled else "",
        )
        return report
