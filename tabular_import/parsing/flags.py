from __future__ import annotations

import re
from typing import Any

"""Boolean cell parsing ("Has Tax" style columns) and income/expense markers."""

__all__ = [
    "parse_direction",
    "parse_flag",
]

TRUE_TOKENS = frozenset({"true", "1", "yes", "y", "sim", "s", "x", "verdadeiro"})
FALSE_TOKENS = frozenset({"false", "0", "no", "n", "nao", "não", "f", "falso"})

_INCOME = re.compile(r"income|receita|entrada|credit|crédito|credito")
_EXPENSE = re.compile(r"expense|despesa|saída|saida|debit|débito|debito")


def parse_flag(value: Any) -> bool | None:
    """Return True/False for recognised tokens, None for blank or unrecognised cells."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        return None
    text = str(value).strip().lower()
    if text in TRUE_TOKENS:
        return True
    if text in FALSE_TOKENS:
        return False
    return None


def parse_direction(value: Any) -> str | None:
    """Return "income" or "expense" for an entry type cell, None when blank,
    unrecognised or naming both."""
    if value is None:
        return None
    text = str(value).strip().lower()
    is_income = bool(_INCOME.search(text))
    is_expense = bool(_EXPENSE.search(text))
    if is_income == is_expense:
        return None
    return "income" if is_income else "expense"
