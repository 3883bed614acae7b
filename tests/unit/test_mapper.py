from __future__ import annotations

import pytest

from tabular_import.services.mapper import (
    MappingError,
    MappingFrozenError,
    MappingIncompleteError,
    auto_map,
)


@pytest.fixture()
def expenses(default_config):
    return default_config.schema("expenses")


@pytest.fixture()
def employees(default_config):
    return default_config.schema("employees")


HEADERS = ["Date", "Description", "Amount", "Vendor"]


def test_auto_map_assigns_first_matching_header(expenses):
    mapping = auto_map(HEADERS, expenses)
    assert mapping["amount"] == "Amount"
    assert mapping["date"] == "Date"
    assert mapping["description"] == "Description"
    assert mapping["counterparty"] == "Vendor"
    assert mapping["category"] is None
    assert mapping.unmapped_required() == []


@pytest.mark.parametrize("dataset", ["income", "expenses"])
def test_plain_ledger_headers_leave_counterparty_unmapped(default_config, dataset):
    mapping = auto_map(["Date", "Description", "Amount", "Total"], default_config.schema(dataset))
    assert mapping["amount"] == "Amount"
    assert mapping["counterparty"] is None


@pytest.mark.parametrize(
    "dataset, header",
    [("income", "Pagador"), ("income", "Payer"), ("expenses", "Favorecido"), ("expenses", "Payee")],
)
def test_counterparty_synonyms(default_config, dataset, header):
    mapping = auto_map(["Data", "Descrição", "Valor", header], default_config.schema(dataset))
    assert mapping["counterparty"] == header


def test_matching_is_case_insensitive_substring(employees):
    mapping = auto_map(["EMPLOYEE FULL NAME", "Cargo"], employees)
    assert mapping["name"] == "EMPLOYEE FULL NAME"
    assert mapping["role"] == "Cargo"


def test_header_reuse_allowed_by_default(employees):
    mapping = auto_map(["Name and Role"], employees)
    assert mapping["name"] == "Name and Role"
    assert mapping["role"] == "Name and Role"


def test_exclusive_mapping_skips_claimed_headers(expenses):
    headers = ["Vendor Cost", "Date"]
    shared = auto_map(headers, expenses)
    assert shared["counterparty"] == "Vendor Cost"
    exclusive = auto_map(headers, expenses, exclusive=True)
    assert exclusive["amount"] == "Vendor Cost"
    assert exclusive["counterparty"] is None


def test_override_and_clear(expenses):
    mapping = auto_map(HEADERS, expenses)
    mapping.override("category", "Description")
    assert mapping["category"] == "Description"
    mapping.override("category", None)
    assert mapping["category"] is None
    mapping.clear()
    assert all(mapping[key] is None for key in mapping)
    assert set(mapping.unmapped_required()) == {"amount", "date"}


def test_remap_restores_detection(expenses):
    mapping = auto_map(HEADERS, expenses)
    mapping.clear()
    mapping.remap()
    assert mapping["amount"] == "Amount"


def test_override_rejects_unknown_field_or_header(expenses):
    mapping = auto_map(HEADERS, expenses)
    with pytest.raises(MappingError):
        mapping.override("nope", "Amount")
    with pytest.raises(MappingError):
        mapping.override("amount", "Missing Header")


def test_exclusive_override_rejects_claimed_header(expenses):
    mapping = auto_map(HEADERS, expenses, exclusive=True)
    with pytest.raises(MappingError):
        mapping.override("category", "Amount")


def test_frozen_mapping_rejects_edits(expenses):
    mapping = auto_map(HEADERS, expenses).freeze()
    assert mapping.frozen
    with pytest.raises(MappingFrozenError):
        mapping.override("category", "Description")
    with pytest.raises(MappingFrozenError):
        mapping.clear()
    with pytest.raises(MappingFrozenError):
        mapping.remap()


def test_ensure_complete_names_missing_fields(expenses):
    mapping = auto_map(["Description", "Vendor"], expenses)
    with pytest.raises(MappingIncompleteError) as exc:
        mapping.ensure_complete()
    assert exc.value.missing == ["amount", "date"]
    assert "amount" in str(exc.value)
