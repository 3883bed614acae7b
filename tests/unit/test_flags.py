from __future__ import annotations

import pytest

from tabular_import.parsing.flags import parse_direction, parse_flag


@pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", "Sim", "y", "x", " X "])
def test_true_tokens(raw):
    assert parse_flag(raw) is True


@pytest.mark.parametrize("raw", ["false", "0", "no", "não", "nao", "n"])
def test_false_tokens(raw):
    assert parse_flag(raw) is False


def test_numbers_and_bools():
    assert parse_flag(1) is True
    assert parse_flag(0.0) is False
    assert parse_flag(True) is True
    assert parse_flag(7) is None


def test_unrecognised_or_blank_is_none():
    assert parse_flag(None) is None
    assert parse_flag("maybe") is None
    assert parse_flag("") is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Income", "income"),
        ("Receita", "income"),
        ("ENTRADA", "income"),
        ("credit", "income"),
        ("Expense", "expense"),
        ("despesa", "expense"),
        ("Saída", "expense"),
        ("Débito", "expense"),
        (None, None),
        ("", None),
        ("transfer", None),
        ("income/expense", None),
    ],
)
def test_parse_direction(raw, expected):
    assert parse_direction(raw) == expected
