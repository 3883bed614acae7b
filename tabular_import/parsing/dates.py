from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any

"""Tolerant date parser.

A fixed, ordered list of formats is tried; the first one that yields a real
calendar date wins. Returns None when nothing matches.

Order:
1. ISO YYYY-MM-DD (a trailing time part is ignored)
2. DD/MM/YYYY then MM/DD/YYYY ("mdy" order swaps the two); "-" and "."
   are accepted in place of "/"
3. long forms without day names: "15 March 2024", "March 15, 2024",
   "15 Mar 2024", "Mar 15, 2024"

date/datetime values pass through; numbers are Excel serial day counts.
"""

__all__ = [
    "parse_date",
]

_ISO = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")
_SLASHED = re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})$")
_LONG_FORMATS = ("%d %B %Y", "%B %d, %Y", "%d %b %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y")

# Excel day 0; exact for serials after the fictitious 1900-02-29 (serial 60)
_EXCEL_EPOCH = date(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958465  # 9999-12-31


def _from_excel_serial(serial: float) -> date | None:
    if math.isnan(serial) or not 1 <= serial <= _EXCEL_MAX_SERIAL:
        return None
    return _EXCEL_EPOCH + timedelta(days=int(serial))


def _make_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: Any, date_order: str = "dmy") -> date | None:
    """Parse a spreadsheet cell as a calendar date.

    Args:
        value: Raw cell (str, date, datetime, int/float serial or None)
        date_order: "dmy" tries DD/MM/YYYY before MM/DD/YYYY, "mdy" the reverse

    Returns:
        date or None when no format resolves to a valid calendar date
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _from_excel_serial(float(value))

    text = str(value).strip()
    if not text:
        return None

    iso = _ISO.match(text)
    if iso:
        year, month, day = (int(p) for p in iso.group(1).split("-"))
        parsed = _make_date(year, month, day)
        if parsed is not None:
            return parsed

    slashed = _SLASHED.match(text)
    if slashed:
        first, second, year = (int(p) for p in slashed.groups())
        candidates = [(second, first), (first, second)]  # (month, day)
        if date_order == "mdy":
            candidates.reverse()
        for month, day in candidates:
            parsed = _make_date(year, month, day)
            if parsed is not None:
                return parsed

    collapsed = re.sub(r"\s+", " ", text)
    for fmt in _LONG_FORMATS:
        try:
            return datetime.strptime(collapsed, fmt).date()
        except ValueError:
            continue
    return None
