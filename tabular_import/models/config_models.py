from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Config dataclasses for the tabular import pipeline.

These are the domain models built by tabular_import/config/loader.py. The schema
registry is static configuration: every instance here is frozen and never mutated
once loaded.
"""

__all__ = [
    "DatabaseConfig",
    "DatasetKind",
    "DatasetSchema",
    "FieldSpec",
    "FieldType",
    "ImportConfig",
    "PipelineConfig",
]


class FieldType(Enum):
    """Semantic type of a schema field; selects the parser in RowValidator."""
    TEXT = "text"
    AMOUNT = "amount"
    DATE = "date"
    BOOLEAN = "boolean"
    DIRECTION = "direction"


class DatasetKind(Enum):
    """Closed set of importable entity kinds.

    Each kind has exactly one record shape in tabular_import.models.records.
    """
    EMPLOYEE = "employee"
    VENDOR = "vendor"
    CLIENT = "client"
    ACCOUNT = "account"
    INCOME = "income"
    EXPENSE = "expense"
    INCOME_TYPE = "income_type"
    LEAD = "lead"


@dataclass(frozen=True)
class FieldSpec:
    """One field of a dataset schema.

    match_patterns are lowercase substrings; a header matches when its
    lowercase form contains any of them.
    """
    key: str
    label: str
    required: bool
    match_patterns: tuple[str, ...]
    field_type: FieldType = FieldType.TEXT

    def matches(self, header: str) -> bool:
        lowered = header.lower()
        return any(p in lowered for p in self.match_patterns)


@dataclass(frozen=True)
class DatasetSchema:
    """Definition of one importable business-entity type.

    Registry order is part of the public contract: it breaks classification
    ties and picks the fallback when nothing matches.
    """
    id: str
    kind: DatasetKind
    label: str
    store_id: str
    keyword_patterns: tuple[str, ...]
    required_fields: tuple[FieldSpec, ...]
    optional_fields: tuple[FieldSpec, ...] = ()

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        """Required fields first, then optional, each in declaration order."""
        return self.required_fields + self.optional_fields

    def field(self, key: str) -> FieldSpec:
        for spec in self.fields:
            if spec.key == key:
                return spec
        raise KeyError(key)


@dataclass(frozen=True)
class PipelineConfig:
    """Explicit tuning inputs for a pipeline run (nothing is read from the environment)."""
    batch_size: int = 50
    row_cap: int = 1000
    header_scan_rows: int = 10
    pause_seconds: float = 0.01
    decimal_separator: str | None = None  # None = heuristic, "." or ","
    date_order: str = "dmy"  # "dmy" or "mdy": which slash format is tried first
    exclusive_mapping: bool = False  # True = a header maps to at most one field


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection fallback.

    Environment variables (and a .env file) take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object: pipeline settings, schema registry, database fallback."""
    registry: tuple[DatasetSchema, ...]
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def schema(self, dataset_id: str) -> DatasetSchema:
        for schema in self.registry:
            if schema.id == dataset_id:
                return schema
        raise KeyError(dataset_id)
