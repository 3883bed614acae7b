from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from ..models.config_models import DatasetSchema

"""FieldMapper: schema fields -> source headers.

auto_map() walks the schema fields (required first, then optional, in
declaration order) and gives each one the first header whose lowercase form
contains any of the field's patterns. ColumnMapping then accepts manual
overrides until it is frozen for import.
"""

__all__ = [
    "ColumnMapping",
    "MappingError",
    "MappingFrozenError",
    "MappingIncompleteError",
    "auto_map",
]

logger = logging.getLogger(__name__)


class MappingError(Exception):
    """Raised on an override naming an unknown field or header."""


class MappingFrozenError(MappingError):
    """Raised on any edit after the mapping was frozen for import."""


class MappingIncompleteError(Exception):
    """Raised when required fields are still unmapped at import time."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"required fields not mapped: {', '.join(missing)}")
        self.missing = missing


def _detect(headers: Sequence[str], schema: DatasetSchema, exclusive: bool) -> dict[str, str | None]:
    assigned: dict[str, str | None] = {}
    claimed: set[str] = set()
    for spec in schema.fields:
        assigned[spec.key] = None
        for header in headers:
            if not header or (exclusive and header in claimed):
                continue
            if spec.matches(header):
                assigned[spec.key] = header
                claimed.add(header)
                break
    return assigned


class ColumnMapping:
    """Field key -> header name (None = unmapped) for one (schema, headers) pair."""

    def __init__(
        self,
        schema: DatasetSchema,
        headers: Sequence[str],
        assignments: dict[str, str | None] | None = None,
        exclusive: bool = False,
    ) -> None:
        self.schema = schema
        self.headers = tuple(headers)
        self.exclusive = exclusive
        self._assigned: dict[str, str | None] = {spec.key: None for spec in schema.fields}
        if assignments:
            self._assigned.update(assignments)
        self._frozen = False

    def __getitem__(self, key: str) -> str | None:
        return self._assigned[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._assigned)

    def __len__(self) -> int:
        return len(self._assigned)

    def get(self, key: str) -> str | None:
        return self._assigned.get(key)

    def as_dict(self) -> dict[str, str | None]:
        return dict(self._assigned)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_editable(self) -> None:
        if self._frozen:
            raise MappingFrozenError("mapping is frozen once import has started")

    def override(self, key: str, header: str | None) -> None:
        """Point one field at header, or None to leave it unmapped."""
        self._check_editable()
        if key not in self._assigned:
            raise MappingError(f"unknown field '{key}' for dataset '{self.schema.id}'")
        if header is not None and header not in self.headers:
            raise MappingError(f"unknown header '{header}'")
        if header is not None and self.exclusive:
            for other, current in self._assigned.items():
                if other != key and current == header:
                    raise MappingError(f"header '{header}' is already mapped to '{other}'")
        self._assigned[key] = header

    def clear(self) -> None:
        self._check_editable()
        for key in self._assigned:
            self._assigned[key] = None

    def remap(self) -> None:
        """Discard edits and run auto-detection again."""
        self._check_editable()
        self._assigned = _detect(self.headers, self.schema, self.exclusive)

    def unmapped_required(self) -> list[str]:
        return [spec.key for spec in self.schema.required_fields if not self._assigned.get(spec.key)]

    def ensure_complete(self) -> None:
        missing = self.unmapped_required()
        if missing:
            raise MappingIncompleteError(missing)

    def freeze(self) -> ColumnMapping:
        self._frozen = True
        return self

    def __repr__(self) -> str:
        return f"ColumnMapping({self.schema.id!r}, {self._assigned!r})"


def auto_map(headers: Sequence[str], schema: DatasetSchema, exclusive: bool = False) -> ColumnMapping:
    """Build the automatic ColumnMapping for schema over headers."""
    assigned = _detect(headers, schema, exclusive)
    logger.debug("auto mapping dataset=%s %s", schema.id, assigned)
    return ColumnMapping(schema, headers, assigned, exclusive=exclusive)
