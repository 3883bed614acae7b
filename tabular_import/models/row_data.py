from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""DataRow model for the tabular import pipeline.

A DataRow is one source row after header detection, keyed by header name.
"""

__all__ = [
    "DataRow",
]


@dataclass(frozen=True)
class DataRow:
    """Logical representation of a single data row after header detection.

    row_index is the 0-based index of the row in the source table (not the
    position among data rows); error reports point back to it.
    Duplicate header names collapse to the last occurrence's value.
    """
    row_index: int  # 0-based index in the RawTable
    values: dict[str, Any]  # Header name -> raw cell value

    def get(self, header: str | None) -> Any:
        if header is None:
            return None
        return self.values.get(header)

    def text(self, header: str | None) -> str:
        """Trimmed string form of a cell, '' when unmapped or blank."""
        value = self.get(header)
        if value is None:
            return ""
        return str(value).strip()
