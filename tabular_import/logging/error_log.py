from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord
from ..models.processing_result import ImportReport

"""Error log buffering.

- JSON Lines with a fixed key set (see ErrorRecord)
- One file per run: `logs/errors-YYYYMMDD-HHMMSS.log` (UTC), created on the
  first flush that has something to write
- Buffered in memory and appended on flush()
"""

__all__ = [
    "ErrorLogBuffer",
    "ErrorRecord",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Not thread safe; one buffer per run.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self.logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def add_report(self, report: ImportReport, file: str, sheet: str) -> int:
        """Buffer one record per failed row of report; returns how many were added."""
        for failed in report.failed_rows:
            self.append(ErrorRecord.create(
                file=file,
                sheet=sheet,
                row=failed.row_index,
                error_type=failed.error_type,
                message=failed.reason,
            ))
        return len(report.failed_rows)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file; None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
