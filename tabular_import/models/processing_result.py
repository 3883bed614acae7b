from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

"""Per-row outcome models and the aggregated ImportReport.

ValidationOutcome is produced by RowValidator, ImportRecord by BatchImporter,
and ImportReport aggregates one importer run. A report is created fresh per
run and never merged with a previous run's report.
"""

__all__ = [
    "BatchStatsAccumulator",
    "FailedRow",
    "ImportRecord",
    "ImportReport",
    "ImportStatus",
    "ValidationOutcome",
]

VALIDATION_FAILED = "VALIDATION_FAILED"
PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


@dataclass(frozen=True)
class ValidationOutcome:
    """Validation result for one DataRow.

    parsed_values holds every mapped field (required and optional) that
    resolved; failed_fields only ever names required fields.
    """
    row_index: int
    valid: bool
    parsed_values: dict[str, Any]
    failed_fields: frozenset[str] = frozenset()

    @property
    def reason(self) -> str | None:
        if self.valid:
            return None
        return "; ".join(f"missing or unparseable {key}" for key in sorted(self.failed_fields))


class ImportStatus(Enum):
    IMPORTED = "imported"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportRecord:
    """Outcome of committing one row: Imported, Skipped(Duplicate) or Failed(reason)."""
    status: ImportStatus
    reason: str | None = None
    error_type: str | None = None  # UPPER_SNAKE, set for FAILED only

    @staticmethod
    def imported() -> ImportRecord:
        return ImportRecord(ImportStatus.IMPORTED)

    @staticmethod
    def duplicate() -> ImportRecord:
        return ImportRecord(ImportStatus.SKIPPED, reason="Duplicate")

    @staticmethod
    def failed(reason: str, error_type: str = VALIDATION_FAILED) -> ImportRecord:
        return ImportRecord(ImportStatus.FAILED, reason=reason, error_type=error_type)


@dataclass(frozen=True)
class FailedRow:
    """A row that could not be imported, with its original header -> value pairs."""
    row_index: int
    reason: str
    original_values: dict[str, Any]
    error_type: str = VALIDATION_FAILED


@dataclass
class ImportReport:
    """Aggregated outcome of one BatchImporter run.

    Invariant: imported_count + skipped_count + failed_count == attempted.
    total_rows is what the run was given; it exceeds attempted only when the
    run was cancelled between batches.
    """
    dataset_id: str
    store_id: str
    total_rows: int = 0
    imported_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    failed_rows: list[FailedRow] = field(default_factory=list)
    outcomes: dict[int, ImportRecord] = field(default_factory=dict)  # row_index -> outcome
    cancelled: bool = False
    truncated_rows: int = 0  # Rows dropped by the row cap before import
    start_time: datetime | None = None
    end_time: datetime | None = None
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    @property
    def attempted(self) -> int:
        return self.imported_count + self.skipped_count + self.failed_count

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def throughput_rows_per_sec(self) -> float:
        elapsed = self.elapsed_seconds
        if elapsed <= 0:
            return 0.0
        return self.attempted / elapsed

    def record(self, row_index: int, outcome: ImportRecord, original_values: dict[str, Any]) -> None:
        """Count one row outcome; failures keep their original values for re-import."""
        self.outcomes[row_index] = outcome
        if outcome.status is ImportStatus.IMPORTED:
            self.imported_count += 1
        elif outcome.status is ImportStatus.SKIPPED:
            self.skipped_count += 1
        else:
            self.failed_count += 1
            self.failed_rows.append(
                FailedRow(
                    row_index=row_index,
                    reason=outcome.reason or "Unknown error",
                    original_values=dict(original_values),
                    error_type=outcome.error_type or VALIDATION_FAILED,
                )
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset": self.dataset_id,
            "store": self.store_id,
            "total": self.total_rows,
            "imported": self.imported_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "cancelled": self.cancelled,
            "truncated": self.truncated_rows,
        }


class BatchStatsAccumulator:
    """Collects per-batch timings and reduces them to summary statistics."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        """Add a batch timing measurement."""
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 inclusive quantiles
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
