from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DatabaseConfig,
    DatasetKind,
    DatasetSchema,
    FieldSpec,
    FieldType,
    ImportConfig,
    PipelineConfig,
)

"""Config loader.

Responsibilities:
- Load a YAML config (pipeline settings, database fallback, schema registry)
- Validate it against the packaged JSON schema (config_schema.json)
- Fall back to the packaged default registry (registry.yml) for any
  section the user config leaves out
- Build frozen domain models (tabular_import.models.config_models)
"""

_CONFIG_DIR = Path(__file__).parent
SCHEMA_PATH = _CONFIG_DIR / "config_schema.json"
DEFAULT_REGISTRY_PATH = _CONFIG_DIR / "registry.yml"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails schema validation (missing required keys,
            wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config validation failed: top level must be a mapping, got {type(data).__name__}")
    return data


def _build_field(raw: dict[str, Any]) -> FieldSpec:
    return FieldSpec(
        key=raw["key"],
        label=raw.get("label", raw["key"]),
        required=bool(raw.get("required", False)),
        match_patterns=tuple(p.lower() for p in raw["patterns"]),
        field_type=FieldType(raw.get("type", "text")),
    )


def _build_schema(raw: dict[str, Any]) -> DatasetSchema:
    fields = [_build_field(f) for f in raw["fields"]]
    keys = [f.key for f in fields]
    duplicated = sorted({k for k in keys if keys.count(k) > 1})
    if duplicated:
        raise ConfigError(f"config validation failed: dataset '{raw['id']}' repeats field keys {duplicated}")
    required = tuple(f for f in fields if f.required)
    if not required:
        raise ConfigError(f"config validation failed: dataset '{raw['id']}' has no required field")
    return DatasetSchema(
        id=raw["id"],
        kind=DatasetKind(raw["kind"]),
        label=raw.get("label", raw["id"]),
        store_id=raw["store"],
        keyword_patterns=tuple(k.lower() for k in raw["keywords"]),
        required_fields=required,
        optional_fields=tuple(f for f in fields if not f.required),
    )


def build_registry(datasets: list[dict[str, Any]]) -> tuple[DatasetSchema, ...]:
    """Build the ordered schema registry from raw dataset entries."""
    registry = tuple(_build_schema(d) for d in datasets)
    ids = [s.id for s in registry]
    duplicated = sorted({i for i in ids if ids.count(i) > 1})
    if duplicated:
        raise ConfigError(f"config validation failed: duplicate dataset ids {duplicated}")
    return registry


def load_config(path: Path | None = None) -> ImportConfig:
    """Load configuration from path, or the packaged defaults when path is None."""
    defaults = _read_yaml(DEFAULT_REGISTRY_PATH)
    data = _read_yaml(path) if path is not None else defaults

    _validate_config_schema(data)

    pipeline_raw = {**defaults.get("pipeline", {}), **data.get("pipeline", {})}
    db_raw = data.get("database", {})
    datasets = data.get("datasets") or defaults["datasets"]

    pipeline = PipelineConfig(
        batch_size=pipeline_raw.get("batch_size", 50),
        row_cap=pipeline_raw.get("row_cap", 1000),
        header_scan_rows=pipeline_raw.get("header_scan_rows", 10),
        pause_seconds=float(pipeline_raw.get("pause_seconds", 0.01)),
        decimal_separator=pipeline_raw.get("decimal_separator"),
        date_order=pipeline_raw.get("date_order", "dmy"),
        exclusive_mapping=bool(pipeline_raw.get("exclusive_mapping", False)),
    )
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(registry=build_registry(datasets), pipeline=pipeline, database=db)
