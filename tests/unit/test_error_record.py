from __future__ import annotations

import json

import pytest

from tabular_import.models.error_record import ErrorRecord

"""Unit tests for the ErrorRecord model."""


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(
        file="vendors.xlsx",
        sheet="Fornecedores",
        row=12,
        error_type="VALIDATION_FAILED",
        message="missing or unparseable name",
    )
    data = json.loads(rec.to_json_line())
    assert data["file"] == "vendors.xlsx"
    assert data["sheet"] == "Fornecedores"
    assert data["row"] == 12
    assert data["message"] == "missing or unparseable name"
    assert data["timestamp"].endswith("Z")
    assert set(data.keys()) == {"timestamp", "file", "sheet", "row", "error_type", "message"}


def test_error_record_row_minus_one_for_file_level_errors():
    rec = ErrorRecord.create("broken.csv", "broken", -1, "PARSE_ERROR", "undecodable input")
    assert json.loads(rec.to_json_line())["row"] == -1


def test_non_ascii_message_is_kept_readable():
    rec = ErrorRecord.create("despesas.csv", "despesas", 3, "VALIDATION_FAILED", "valor inválido")
    assert "inválido" in rec.to_json_line()


def test_error_record_is_frozen():
    rec = ErrorRecord.create("a.csv", "a", 1, "VALIDATION_FAILED", "x")
    with pytest.raises(AttributeError):
        rec.row = 2
