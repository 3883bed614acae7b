from __future__ import annotations

from ..models.processing_result import ImportReport

"""Summary line rendering for one import run.

Format:
SUMMARY rows={attempted}/{total} imported={n} skipped={n} failed={n}
truncated={n} elapsed_sec={elapsed} throughput_rps={throughput}
"""

__all__ = ["render_summary_line"]


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Avoid scientific notation
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(report: ImportReport) -> str:
    """Render the SUMMARY line for an ImportReport.

    Examples:
        >>> from datetime import datetime, timezone
        >>> report = ImportReport(dataset_id="clients", store_id="clients", total_rows=4,
        ...     imported_count=3, failed_count=1,
        ...     start_time=datetime(2023, 1, 1, 10, 0, 0, tzinfo=timezone.utc),
        ...     end_time=datetime(2023, 1, 1, 10, 0, 2, tzinfo=timezone.utc))
        >>> render_summary_line(report)
        'SUMMARY rows=4/4 imported=3 skipped=0 failed=1 truncated=0 elapsed_sec=2 throughput_rps=2'
    """
    return (
        f"SUMMARY rows={report.attempted}/{report.total_rows} "
        f"imported={report.imported_count} "
        f"skipped={report.skipped_count} "
        f"failed={report.failed_count} "
        f"truncated={report.truncated_rows} "
        f"elapsed_sec={_format_number(report.elapsed_seconds)} "
        f"throughput_rps={_format_number(report.throughput_rows_per_sec)}"
    )
