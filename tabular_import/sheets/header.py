from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

from ..models.row_data import DataRow
from ..models.sheet_table import HeaderDetection, RawTable

"""HeaderDetector: RawTable -> Headers + DataRows.

Human-made sheets often start with titles, notes or blank lines. The header
row is chosen by score among the first K rows:

    score = 2 * (non-numeric cells) + (distinct cells) + (5 if >= 2 cells)

over the trimmed, non-empty cells of a row (a row with none scores 0 and is
never chosen). The strictly highest score wins; ties go to the earliest row.
"""

__all__ = [
    "HeaderNotFoundError",
    "detect_header",
    "score_header_row",
]

logger = logging.getLogger(__name__)

DEFAULT_SCAN_ROWS = 10
DEFAULT_ROW_CAP = 1000

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class HeaderNotFoundError(Exception):
    """Raised when no candidate row has a non-empty cell."""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _is_numeric(text: str) -> bool:
    return bool(_NUMERIC.match(text))


def score_header_row(row: tuple[Any, ...]) -> int:
    cells = [c for c in (_cell_text(v) for v in row) if c]
    if not cells:
        return 0
    text_cells = sum(1 for c in cells if not _is_numeric(c))
    return 2 * text_cells + len(set(cells)) + (5 if len(cells) >= 2 else 0)


def _is_blank(values: dict[str, Any]) -> bool:
    return all(_cell_text(v) == "" for v in values.values())


def detect_header(
    table: RawTable,
    scan_rows: int = DEFAULT_SCAN_ROWS,
    row_cap: int = DEFAULT_ROW_CAP,
) -> HeaderDetection:
    """Find the header row of table and build its DataRows.

    Data rows are the non-blank rows after the header (blank after trimming
    means dropped), at most row_cap of them; blank rows do not count toward
    the cap or toward truncated_rows. Each header is keyed to the
    cell in its own source column, so a blank header cell does not shift the
    columns after it. When a header name repeats, the last column wins.

    Raises:
        HeaderNotFoundError: every scanned row scores 0
    """
    best_index = -1
    best_score = 0
    for i, row in enumerate(table.rows[:scan_rows]):
        score = score_header_row(row)
        logger.debug("header scan row=%d score=%d", i, score)
        if score > best_score:
            best_score = score
            best_index = i

    if best_index < 0:
        raise HeaderNotFoundError(
            f"no header row found in the first {min(scan_rows, len(table))} rows of '{table.sheet_name}'"
        )

    header_cells = [(col, _cell_text(v)) for col, v in enumerate(table.rows[best_index])]
    columns = [(col, name) for col, name in header_cells if name]
    headers = tuple(name for _, name in columns)

    rows: list[DataRow] = []
    truncated = 0
    for offset, raw in enumerate(table.rows[best_index + 1:]):
        values: dict[str, Any] = {}
        for col, name in columns:
            values[name] = raw[col] if col < len(raw) else None
        if _is_blank(values):
            continue
        if len(rows) < row_cap:
            rows.append(DataRow(row_index=best_index + 1 + offset, values=values))
        else:
            truncated += 1
    if truncated:
        logger.warning(
            "row cap reached: %d data row(s) after row %d of '%s' were not loaded (cap=%d)",
            truncated, rows[-1].row_index, table.sheet_name, row_cap,
        )

    logger.debug("header row=%d headers=%s data_rows=%d", best_index, list(headers), len(rows))
    return HeaderDetection(
        header_index=best_index,
        headers=headers,
        rows=tuple(rows),
        truncated_rows=truncated,
    )
