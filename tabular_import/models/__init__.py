"""Domain models for the tabular import pipeline.

Configuration (schema registry, pipeline settings), sheet/row shapes,
typed records and per-row / per-run outcomes. All models except
ImportReport are frozen dataclasses.
"""

from .config_models import (
    DatabaseConfig,
    DatasetKind,
    DatasetSchema,
    FieldSpec,
    FieldType,
    ImportConfig,
    PipelineConfig,
)
from .error_record import ErrorRecord
from .processing_result import (
    FailedRow,
    ImportRecord,
    ImportReport,
    ImportStatus,
    ValidationOutcome,
)
from .records import ImportContext, build_record
from .row_data import DataRow
from .sheet_table import HeaderDetection, RawTable

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "DatasetKind",
    "DatasetSchema",
    "FieldSpec",
    "FieldType",
    "ImportConfig",
    "PipelineConfig",
    # Sheet models
    "DataRow",
    "HeaderDetection",
    "RawTable",
    # Records
    "ImportContext",
    "build_record",
    # Outcomes
    "ErrorRecord",
    "FailedRow",
    "ImportRecord",
    "ImportReport",
    "ImportStatus",
    "ValidationOutcome",
]
