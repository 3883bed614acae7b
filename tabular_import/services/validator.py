from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.config_models import DatasetSchema, FieldSpec, FieldType, PipelineConfig
from ..models.processing_result import ValidationOutcome
from ..models.row_data import DataRow
from ..parsing.dates import parse_date
from ..parsing.flags import parse_direction, parse_flag
from ..parsing.money import parse_money
from .mapper import ColumnMapping

"""RowValidator: DataRows -> ValidationOutcomes.

Pure computation, no side effects. A row is valid iff every required field
resolves to a non-empty parsed value. Optional fields are parsed on a best
effort basis and never make a row invalid, except an entry type cell that is
filled in but names neither income nor expense.
"""

__all__ = [
    "ParseOptions",
    "RowValidationError",
    "ValidationSummary",
    "parse_field",
    "validate_row",
    "validate_rows",
]

logger = logging.getLogger(__name__)


class RowValidationError(Exception):
    """A single row failed validation; recorded as Failed, never fatal."""

    def __init__(self, outcome: ValidationOutcome) -> None:
        super().__init__(outcome.reason or "invalid row")
        self.outcome = outcome


@dataclass(frozen=True)
class ParseOptions:
    """Locale knobs for tolerant parsing."""
    decimal_separator: str | None = None
    date_order: str = "dmy"

    @classmethod
    def from_config(cls, config: PipelineConfig) -> ParseOptions:
        return cls(decimal_separator=config.decimal_separator, date_order=config.date_order)


@dataclass
class ValidationSummary:
    """Per-row outcomes plus aggregate tallies for the pre-import preview."""
    outcomes: list[ValidationOutcome] = field(default_factory=list)
    failure_tally: Counter[str] = field(default_factory=Counter)

    @property
    def valid_count(self) -> int:
        return sum(1 for o in self.outcomes if o.valid)

    @property
    def invalid_count(self) -> int:
        return len(self.outcomes) - self.valid_count

    def most_common_failures(self, n: int | None = None) -> list[tuple[str, int]]:
        return self.failure_tally.most_common(n)


def parse_field(spec: FieldSpec, raw: Any, options: ParseOptions) -> Any:
    """Parse one cell for spec; None when blank or unparseable."""
    if raw is None:
        return None
    if spec.field_type is FieldType.AMOUNT:
        return parse_money(raw, options.decimal_separator)
    if spec.field_type is FieldType.DATE:
        return parse_date(raw, options.date_order)
    if spec.field_type is FieldType.BOOLEAN:
        return parse_flag(raw)
    if spec.field_type is FieldType.DIRECTION:
        return parse_direction(raw)
    text = str(raw).strip()
    return text or None


def _is_blank(raw: Any) -> bool:
    return raw is None or not str(raw).strip()


def validate_row(
    row: DataRow, mapping: ColumnMapping, schema: DatasetSchema, options: ParseOptions
) -> ValidationOutcome:
    parsed: dict[str, Any] = {}
    failed: set[str] = set()
    for spec in schema.fields:
        raw = row.get(mapping.get(spec.key))
        value = parse_field(spec, raw, options)
        if value is not None:
            parsed[spec.key] = value
        elif spec.required or (spec.field_type is FieldType.DIRECTION and not _is_blank(raw)):
            failed.add(spec.key)
    return ValidationOutcome(
        row_index=row.row_index,
        valid=not failed,
        parsed_values=parsed,
        failed_fields=frozenset(failed),
    )


def validate_rows(
    rows: Sequence[DataRow],
    mapping: ColumnMapping,
    schema: DatasetSchema,
    options: ParseOptions | None = None,
) -> ValidationSummary:
    options = options or ParseOptions()
    summary = ValidationSummary()
    for row in rows:
        outcome = validate_row(row, mapping, schema, options)
        summary.outcomes.append(outcome)
        summary.failure_tally.update(outcome.failed_fields)
    logger.info(
        "validated dataset=%s rows=%d valid=%d invalid=%d",
        schema.id, len(rows), summary.valid_count, summary.invalid_count,
    )
    if summary.failure_tally:
        logger.info("most frequent missing/unparseable fields: %s", summary.most_common_failures(3))
    return summary
