from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .row_data import DataRow

"""RawTable and HeaderDetection models.

RawTable is the grid of one sheet/file before a header is identified;
HeaderDetection is what HeaderDetector derives from it. Both are produced
once per run and are read-only afterwards.
"""

__all__ = [
    "HeaderDetection",
    "RawTable",
]


@dataclass(frozen=True)
class RawTable:
    """Unparsed rows of a single sheet. Column count may vary per row."""
    sheet_name: str
    rows: tuple[tuple[Any, ...], ...]
    source_name: str = ""  # File name, informational only

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class HeaderDetection:
    """Result of header detection on a RawTable.

    truncated_rows counts source rows after the header that fell beyond the
    row cap; callers must surface it instead of hiding it.
    """
    header_index: int
    headers: tuple[str, ...]
    rows: tuple[DataRow, ...]
    truncated_rows: int = 0

    @property
    def unique_headers(self) -> list[str]:
        """Headers with duplicates removed, first position kept."""
        seen: list[str] = []
        for h in self.headers:
            if h not in seen:
                seen.append(h)
        return seen
