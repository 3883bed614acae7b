from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from ..models.processing_result import ImportReport

"""ErrorReporter: failed rows -> re-uploadable delimited text.

Columns are row_index, reason, then the original headers in source order
(duplicate header names once). Each failed row keeps the cell values it was
read with, so the file can be corrected and fed back through the pipeline:
the header detector finds the original header row again and the two extra
columns do not match any field pattern.
"""

__all__ = [
    "REPORT_COLUMNS",
    "build_error_frame",
    "render_error_report",
    "write_error_report",
]

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ("row_index", "reason")


def _unique(headers: Sequence[str]) -> list[str]:
    seen: list[str] = []
    for h in headers:
        if h not in seen and h not in REPORT_COLUMNS:
            seen.append(h)
    return seen


def build_error_frame(report: ImportReport, headers: Sequence[str]) -> pd.DataFrame:
    """One row per failed import, in the order the failures were recorded."""
    columns = [*REPORT_COLUMNS, *_unique(headers)]
    records = []
    for failed in report.failed_rows:
        row = {"row_index": failed.row_index, "reason": failed.reason}
        for h in columns[len(REPORT_COLUMNS):]:
            row[h] = failed.original_values.get(h)
        records.append(row)
    return pd.DataFrame.from_records(records, columns=columns)


def render_error_report(report: ImportReport, headers: Sequence[str], sep: str = ",") -> str:
    return build_error_frame(report, headers).to_csv(index=False, sep=sep, lineterminator="\n")


def write_error_report(
    report: ImportReport, headers: Sequence[str], path: Path, sep: str = ","
) -> Path:
    """Write the error report as UTF-8 delimited text and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = build_error_frame(report, headers)
    frame.to_csv(path, index=False, sep=sep, lineterminator="\n", encoding="utf-8")
    logger.info("error report written: %s (%d row(s))", path, len(frame))
    return path
