from __future__ import annotations
import pytest
from pathlib import Path
from tabular_import.config.loader import ConfigError, build_registry, load_config
from tabular_import.models.config_models import DatasetKind, FieldType

CUSTOM_CONFIG = """pipeline:
  batch_size: 10
  decimal_separator: ","
  date_order: mdy
database:
  host: db.internal
  port: 5433
  database: crm
datasets:
  - id: suppliers
    kind: vendor
    store: suppliers
    keywords: [Supplier, CNPJ]
    fields:
      - {key: name, required: true, patterns: [Supplier, Fornecedor]}
      - {key: phone, patterns: [phone]}
"""


@pytest.fixture()
def write_yaml(temp_workdir: Path):
    def _write(text: str) -> Path:
        path = temp_workdir / "import.yml"
        path.write_text(text, encoding="utf-8")
        return path
    return _write


def test_default_config_has_registry_in_priority_order():
    cfg = load_config()
    assert [s.id for s in cfg.registry] == [
        "employees", "vendors", "clients", "accounts", "income", "expenses", "income_types", "leads",
    ]
    assert cfg.pipeline.batch_size == 50
    assert cfg.pipeline.row_cap == 1000
    assert cfg.pipeline.header_scan_rows == 10
    assert cfg.pipeline.decimal_separator is None
    assert cfg.pipeline.exclusive_mapping is False


def test_default_store_ids():
    cfg = load_config()
    stores = {s.id: s.store_id for s in cfg.registry}
    assert stores["employees"] == "company_employees"
    assert stores["vendors"] == "company_providers"
    assert stores["leads"] == stores["clients"] == "company_clients"
    assert stores["income"] == stores["expenses"] == "financial_entries"


def test_default_field_types_and_required_split():
    cfg = load_config()
    expenses = cfg.schema("expenses")
    assert expenses.kind is DatasetKind.EXPENSE
    assert [f.key for f in expenses.required_fields] == ["amount", "date"]
    assert expenses.field("amount").field_type is FieldType.AMOUNT
    assert expenses.field("date").field_type is FieldType.DATE
    assert cfg.schema("accounts").field("has_tax").field_type is FieldType.BOOLEAN
    assert cfg.schema("income").field("entry_type").field_type is FieldType.DIRECTION


def test_custom_config_overrides_pipeline_and_registry(write_yaml):
    cfg = load_config(write_yaml(CUSTOM_CONFIG))
    assert cfg.pipeline.batch_size == 10
    # keys left out fall back to the packaged defaults
    assert cfg.pipeline.row_cap == 1000
    assert cfg.pipeline.decimal_separator == ","
    assert cfg.pipeline.date_order == "mdy"
    assert cfg.database.host == "db.internal"
    assert cfg.database.port == 5433
    assert [s.id for s in cfg.registry] == ["suppliers"]
    supplier = cfg.schema("suppliers")
    # patterns and keywords are matched in lowercase
    assert supplier.keyword_patterns == ("supplier", "cnpj")
    assert supplier.field("name").match_patterns == ("supplier", "fornecedor")
    assert supplier.field("name").label == "name"


def test_config_without_datasets_keeps_default_registry(write_yaml):
    cfg = load_config(write_yaml("pipeline:\n  batch_size: 5\n"))
    assert cfg.pipeline.batch_size == 5
    assert len(cfg.registry) == 8


def test_empty_file_means_defaults(write_yaml):
    cfg = load_config(write_yaml(""))
    assert len(cfg.registry) == 8


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError) as e:
        load_config(temp_workdir / "not_exists.yml")
    assert "config file not found" in str(e.value)


def test_invalid_yaml(write_yaml):
    with pytest.raises(ConfigError):
        load_config(write_yaml("pipeline: [unclosed\n"))


@pytest.mark.parametrize(
    "text",
    [
        "unknown_section: 1\n",
        "pipeline:\n  batch_size: 0\n",
        "pipeline:\n  date_order: ymd\n",
        "pipeline:\n  decimal_separator: ';'\n",
        "datasets:\n  - {id: x, kind: robot, store: x, keywords: [], fields: [{key: name, patterns: [n]}]}\n",
        "datasets:\n  - {id: x, kind: client, store: x, keywords: []}\n",
        "- just\n- a list\n",
    ],
)
def test_schema_violations(write_yaml, text):
    with pytest.raises(ConfigError) as e:
        load_config(write_yaml(text))
    assert "config validation failed" in str(e.value)


def test_dataset_without_required_field_is_rejected():
    with pytest.raises(ConfigError) as e:
        build_registry([{"id": "x", "kind": "client", "store": "x", "keywords": [],
                         "fields": [{"key": "name", "patterns": ["name"]}]}])
    assert "no required field" in str(e.value)


def test_duplicate_dataset_ids_are_rejected():
    raw = {"id": "x", "kind": "client", "store": "x", "keywords": [],
           "fields": [{"key": "name", "required": True, "patterns": ["name"]}]}
    with pytest.raises(ConfigError) as e:
        build_registry([raw, dict(raw)])
    assert "duplicate dataset ids" in str(e.value)


def test_duplicate_field_keys_are_rejected():
    raw = {"id": "x", "kind": "client", "store": "x", "keywords": [],
           "fields": [{"key": "name", "required": True, "patterns": ["name"]},
                      {"key": "name", "patterns": ["nome"]}]}
    with pytest.raises(ConfigError):
        build_registry([raw])
