from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

"""Tolerant money parser.

Accepts human-formatted amounts from spreadsheets ("$1,234.56", "1.234,56",
"(12.00)", "CAD 100", "1 234,56") and returns a Decimal, or None when the
value is empty or cannot be resolved without guessing.

Contract (None is returned when):
- the value is empty, "-" or only a currency marker
- anything other than digits, "," and "." remains after stripping sign,
  parentheses, currency codes/symbols and whitespace
- the decimal separator would occur more than once
- a thousands separator does not sit between groups of exactly 3 digits
  (the first group may have 1-3 digits)

Separator resolution:
- both "," and "." present: the rightmost one is the decimal point
- one kind only, occurring once: followed by 1 or 2 digits it is the
  decimal point, by exactly 3 digits a thousands separator; any other
  digit count is ambiguous and yields None
- one kind only, occurring more than once: thousands separators
- an explicit decimal_separator turns a lone separator of that kind into
  the decimal point regardless of digit count, and the other kind into
  thousands separators
"""

__all__ = [
    "parse_money",
]

_CURRENCY_PREFIX = re.compile(r"^(CAD\$?|USD\$?|EUR€?|BRL|GBP|R\$|US\$|£|€|¥|\$)\s*", re.IGNORECASE)
_CURRENCY_SUFFIX = re.compile(r"\s*(CAD|USD|EUR|BRL|GBP|£|€|\$)$", re.IGNORECASE)
_ALLOWED = re.compile(r"^[\d.,]+$")


def _strip_currency(text: str) -> str:
    text = _CURRENCY_PREFIX.sub("", text)
    text = _CURRENCY_SUFFIX.sub("", text)
    return text.strip()


def _valid_grouping(integer_part: str, sep: str) -> bool:
    groups = integer_part.split(sep)
    if not groups[0] or len(groups[0]) > 3:
        return False
    return all(len(g) == 3 for g in groups[1:])


def _normalize(body: str, decimal_separator: str | None) -> str | None:
    """Return body as a plain 'digits[.digits]' string, or None if ambiguous."""
    has_dot = "." in body
    has_comma = "," in body

    if has_dot and has_comma:
        decimal = "." if body.rfind(".") > body.rfind(",") else ","
    elif has_dot or has_comma:
        sep = "." if has_dot else ","
        occurrences = body.count(sep)
        if decimal_separator is not None:
            decimal = sep if sep == decimal_separator else None
        elif occurrences == 1 and re.fullmatch(r"\d{1,2}", body.rsplit(sep, 1)[1]):
            decimal = sep
        else:
            decimal = None
    else:
        return body

    if decimal is None:
        # single kind of separator used purely for grouping
        thousands = "." if has_dot else ","
        if not _valid_grouping(body, thousands):
            return None
        return body.replace(thousands, "")

    thousands = "," if decimal == "." else "."
    if body.count(decimal) != 1:
        return None
    integer_part, fraction = body.split(decimal)
    if thousands in fraction or not fraction.isdigit():
        return None
    if thousands in integer_part:
        if not _valid_grouping(integer_part, thousands):
            return None
        integer_part = integer_part.replace(thousands, "")
    if not integer_part:
        integer_part = "0"
    if not integer_part.isdigit():
        return None
    return f"{integer_part}.{fraction}"


def parse_money(value: Any, decimal_separator: str | None = None) -> Decimal | None:
    """Parse a spreadsheet cell as an amount.

    Args:
        value: Raw cell (str, int, float, Decimal or None)
        decimal_separator: None for the heuristic, or "." / "," for an explicit locale

    Returns:
        Decimal amount, negative for "-x" and "(x)", or None (see module contract)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return Decimal(str(value))

    text = str(value).strip()
    if not text or text == "-":
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()
    if text.startswith("-"):
        negative = True
        text = text[1:].strip()

    text = _strip_currency(text)
    # currency marker may precede the sign: "$-12.00"
    if text.startswith("-"):
        negative = True
        text = text[1:]
    text = re.sub(r"\s+", "", text)
    if not text or not _ALLOWED.match(text) or not any(c.isdigit() for c in text):
        return None

    normalized = _normalize(text, decimal_separator)
    if normalized is None:
        return None
    try:
        amount = Decimal(normalized)
    except InvalidOperation:
        return None
    return -amount if negative else amount
