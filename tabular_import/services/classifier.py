from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models.config_models import DatasetSchema

"""DatasetClassifier: Headers -> best matching DatasetSchema.

A schema scores one point per keyword that occurs (as a lowercase substring)
in at least one header. The strictly highest score wins, ties go to the
schema listed first in the registry, and when nothing scores the first
schema is returned as a default so a human can still reassign the type.
"""

__all__ = [
    "ClassificationError",
    "classify",
    "score_schema",
    "score_schemas",
]

logger = logging.getLogger(__name__)


class ClassificationError(Exception):
    """Raised when the registry is empty."""


def score_schema(headers: Sequence[str], schema: DatasetSchema) -> int:
    lowered = [h.lower() for h in headers if h]
    return sum(1 for kw in schema.keyword_patterns if any(kw in h for h in lowered))


def score_schemas(
    headers: Sequence[str], registry: Sequence[DatasetSchema]
) -> list[tuple[DatasetSchema, int]]:
    """Score of every schema, in registry order (for diagnostics / UI ranking)."""
    return [(schema, score_schema(headers, schema)) for schema in registry]


def classify(headers: Sequence[str], registry: Sequence[DatasetSchema]) -> DatasetSchema:
    if not registry:
        raise ClassificationError("schema registry is empty")
    best = registry[0]
    best_score = 0
    for schema, score in score_schemas(headers, registry):
        if score > best_score:
            best, best_score = schema, score
    if best_score == 0:
        logger.info("no dataset keywords matched; defaulting to '%s'", best.id)
    else:
        logger.debug("classified as '%s' score=%d", best.id, best_score)
    return best
