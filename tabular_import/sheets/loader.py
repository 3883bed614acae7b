from __future__ import annotations

import csv
import io
import math
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.sheet_table import RawTable

"""SheetLoader: raw bytes/text -> RawTable.

No header is assumed at this stage; every row of the chosen sheet is kept
as-is (values normalized to plain Python scalars, blanks to None). The row
cap is applied later, by header detection, because it counts data rows.

Delimited text: the delimiter is sniffed from the first line (";" then tab,
falling back to ","). Workbooks: every sheet name is exposed; a single sheet
is auto-selected, otherwise the caller must name one.
"""

__all__ = [
    "EmptyInputError",
    "ParseError",
    "SheetSelectionError",
    "SourceFormat",
    "detect_format",
    "list_sheets",
    "load_path",
    "load_table",
    "sniff_delimiter",
]

MIN_RAW_ROWS = 2  # a potential header and one data row

DELIMITED_SUFFIXES = {".csv", ".tsv", ".txt"}
WORKBOOK_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


class ParseError(Exception):
    """Raised when the input cannot be decoded or is not a readable table."""


class EmptyInputError(Exception):
    """Raised when fewer than two raw rows exist."""


class SheetSelectionError(Exception):
    """Raised when a workbook sheet must be chosen, or the chosen one does not exist."""

    def __init__(self, message: str, sheet_names: list[str]) -> None:
        super().__init__(message)
        self.sheet_names = sheet_names


class SourceFormat(Enum):
    DELIMITED = "delimited"
    WORKBOOK = "workbook"


def sniff_delimiter(text: str) -> str:
    """Pick the delimiter from the first non-blank line: ';', then tab, else ','."""
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    if ";" in first_line:
        return ";"
    if "\t" in first_line:
        return "\t"
    return ","


def _decode(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _normalize_cell(value: Any) -> Any:
    """Plain Python scalar for a pandas cell; NaN/NaT/blank -> None."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _frame_to_rows(df: pd.DataFrame) -> tuple[tuple[Any, ...], ...]:
    rows: list[tuple[Any, ...]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = [_normalize_cell(v) for v in raw]
        # trailing blanks are not columns of this row
        while cells and cells[-1] is None:
            cells.pop()
        rows.append(tuple(cells))
    return tuple(rows)


def _read_delimited(text: str) -> pd.DataFrame:
    lines = text.splitlines()
    if not any(line.strip() for line in lines):
        # nothing to parse; keep the blank lines as blank rows
        return pd.DataFrame([[None]] * len(lines))
    delimiter = sniff_delimiter(text)
    # ragged rows: size the frame for the widest line
    width = max(line.count(delimiter) for line in lines) + 1
    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            skipinitialspace=True,
            engine="python",
        )
    except (pd.errors.ParserError, ValueError, csv.Error) as e:
        raise ParseError(f"unreadable delimited text: {e}") from e


def _open_workbook(data: bytes) -> pd.ExcelFile:
    try:
        return pd.ExcelFile(io.BytesIO(data))
    except Exception as e:  # openpyxl/xlrd raise a variety of types for corrupt files
        raise ParseError(f"unreadable workbook: {e}") from e


def list_sheets(data: bytes) -> list[str]:
    """Sheet names of a workbook, in workbook order."""
    with _open_workbook(data) as xls:
        return [str(name) for name in xls.sheet_names]


def _read_workbook(data: bytes, sheet: str | None) -> tuple[str, pd.DataFrame]:
    with _open_workbook(data) as xls:
        names = [str(name) for name in xls.sheet_names]
        if not names:
            raise EmptyInputError("workbook has no sheets")
        if sheet is None:
            if len(names) > 1:
                raise SheetSelectionError(
                    f"workbook has {len(names)} sheets, choose one of {names}", names
                )
            sheet = names[0]
        elif sheet not in names:
            raise SheetSelectionError(f"sheet '{sheet}' not found, available: {names}", names)
        try:
            df = xls.parse(sheet, header=None, dtype=object, keep_default_na=False, na_values=[""])
        except Exception as e:
            raise ParseError(f"unreadable sheet '{sheet}': {e}") from e
    return sheet, df


def load_table(
    data: bytes | str,
    fmt: SourceFormat,
    sheet: str | None = None,
    source_name: str = "",
) -> RawTable:
    """Decode raw input into the RawTable of one sheet.

    Args:
        data: File contents (text is accepted for delimited input)
        fmt: Declared format hint
        sheet: Workbook sheet to load (ignored for delimited text)
        source_name: File name, carried for reporting

    Raises:
        ParseError: unreadable or corrupt input
        EmptyInputError: fewer than two raw rows
        SheetSelectionError: several sheets and none chosen, or unknown sheet
    """
    if fmt is SourceFormat.DELIMITED:
        df = _read_delimited(_decode(data))
        sheet_name = Path(source_name).stem if source_name else "data"
    else:
        if isinstance(data, str):
            raise ParseError("workbook input must be bytes")
        sheet_name, df = _read_workbook(data, sheet)

    rows = _frame_to_rows(df)
    if len(rows) < MIN_RAW_ROWS:
        raise EmptyInputError(
            f"'{sheet_name}' has {len(rows)} row(s); a header row and at least one data row are required"
        )
    return RawTable(sheet_name=sheet_name, rows=rows, source_name=source_name)


def detect_format(path: Path) -> SourceFormat:
    suffix = path.suffix.lower()
    if suffix in DELIMITED_SUFFIXES:
        return SourceFormat.DELIMITED
    if suffix in WORKBOOK_SUFFIXES:
        return SourceFormat.WORKBOOK
    raise ParseError(f"unsupported format '{suffix}': use CSV/TSV or XLSX")


def load_path(path: Path, sheet: str | None = None) -> RawTable:
    """Read a file from disk, inferring the format from its suffix."""
    fmt = detect_format(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ParseError(f"cannot read {path}: {e}") from e
    return load_table(data, fmt, sheet=sheet, source_name=path.name)
