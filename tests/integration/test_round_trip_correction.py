from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pandas as pd

from tabular_import.services.pipeline import prepare, run_pipeline
from tabular_import.services.reporter import write_error_report

"""Error report -> fix flagged cells -> re-upload."""


def test_corrected_report_imports_only_the_fixed_rows(
    temp_workdir: Path, write_csv, expense_rows, default_config, memory_store
):
    first = run_pipeline(write_csv("expenses.csv", expense_rows), memory_store, default_config)
    assert first.report.failed_count == 1
    report_path = write_error_report(first.report, first.plan.headers, temp_workdir / "out" / "errors.csv")

    frame = pd.read_csv(report_path, dtype=str, keep_default_na=False)
    frame.loc[frame["row_index"] == "3", "Amount"] = "42.00"
    frame.to_csv(report_path, index=False)

    # the reserved report columns are ignored when mapping the re-upload
    plan = prepare(report_path, default_config, dataset="expenses")
    assert "row_index" not in plan.mapping.as_dict().values()
    assert plan.mapping["counterparty"] == "Vendor"

    second = run_pipeline(report_path, memory_store, default_config, dataset="expenses")
    assert (second.report.imported_count, second.report.failed_count) == (1, 0)
    entries = memory_store.records("financial_entries")
    assert len(entries) == 4
    assert entries[-1]["description"] == "Catering"


def test_uncorrected_report_fails_again(temp_workdir: Path, write_csv, expense_rows, default_config, memory_store):
    first = run_pipeline(write_csv("expenses.csv", expense_rows), memory_store, default_config)
    report_path = write_error_report(first.report, first.plan.headers, temp_workdir / "errors.csv")
    second = run_pipeline(report_path, memory_store, default_config, dataset="expenses")
    assert second.report.failed_count == 1
    assert second.report.failed_rows[0].reason == "missing or unparseable amount"
    assert len(memory_store.records("financial_entries")) == 3


def test_reupload_of_already_imported_row_is_skipped(
    temp_workdir: Path, write_csv, expense_rows, default_config, memory_store
):
    run_pipeline(write_csv("expenses.csv", expense_rows), memory_store, default_config)
    again = run_pipeline(write_csv("expenses.csv", expense_rows), memory_store, default_config)
    assert (again.report.imported_count, again.report.skipped_count, again.report.failed_count) == (0, 3, 1)


def test_workbook_float_amount_survives_the_report_round_trip(
    temp_workdir: Path, write_xlsx, default_config, memory_store
):
    path = write_xlsx("fuel.xlsx", {"Sheet1": [["Date", "Description", "Amount"], [None, "Fuel", 1234.5]]})
    first = run_pipeline(path, memory_store, default_config, dataset="expenses")
    assert first.report.failed_count == 1
    assert first.report.failed_rows[0].reason == "missing or unparseable date"
    report_path = write_error_report(first.report, first.plan.headers, temp_workdir / "out" / "fuel_errors.csv")

    frame = pd.read_csv(report_path, dtype=str, keep_default_na=False)
    assert frame.loc[0, "Amount"] == "1234.5"
    frame.loc[0, "Date"] = "15/03/2024"
    frame.to_csv(report_path, index=False)

    second = run_pipeline(report_path, memory_store, default_config, dataset="expenses")
    assert (second.report.imported_count, second.report.failed_count) == (1, 0)
    entry = memory_store.records("financial_entries")[0]
    assert entry["amount"] == Decimal("1234.5")
    assert entry["direction"] == "expense"
