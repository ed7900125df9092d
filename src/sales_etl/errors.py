# src/sales_etl/errors.py
"""
Pipeline error taxonomy.

Every error raised by the source, aggregator, loader and orchestrator derives
from PipelineError so triggers can render any failure as text.
"""

from typing import List, Optional


class PipelineError(Exception):
    """Base class for all pipeline failures"""


class ConfigurationError(PipelineError):
    """Required settings are missing or invalid"""


class RetrievalError(PipelineError):
    """The export could not be fetched from object storage"""

    def __init__(self, bucket: str, key: str, cause: Exception):
        self.bucket = bucket
        self.key = key
        self.cause = cause
        super().__init__(f"Error reading CSV from s3://{bucket}/{key}: {cause}")


class ParseError(PipelineError):
    """The export is not well-formed CSV"""


class RowValidationError(PipelineError):
    """A single row could not be decoded into a sales record"""

    def __init__(
        self,
        field: str,
        value: Optional[str],
        reason: str,
        line_number: Optional[int] = None,
    ):
        self.field = field
        self.value = value
        self.reason = reason
        self.line_number = line_number
        where = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{where}invalid {field} {value!r}: {reason}")


class WarehouseConnectionError(PipelineError):
    """The warehouse could not be reached"""


class LoadError(PipelineError):
    """Inserting one aggregate key failed"""

    def __init__(self, table: str, key: str, cause: Exception):
        self.table = table
        self.key = key
        self.cause = cause
        super().__init__(f"failed to insert data {key} into {table}: {cause}")


class BatchLoadError(PipelineError):
    """One or more keys failed to load; raised after every table was attempted"""

    def __init__(self, errors: List[LoadError]):
        self.errors = list(errors)
        tables = sorted({e.table for e in self.errors})
        lines = [
            f"Error inserting sales data: {len(self.errors)} key(s) failed "
            f"in {', '.join(tables)}"
        ]
        lines.extend(f"  - {e}" for e in self.errors)
        super().__init__("\n".join(lines))


class InvalidActionError(PipelineError):
    """The requested action is neither print nor insert"""

    def __init__(self, action: Optional[str]):
        self.action = action
        super().__init__(
            f"Invalid action {action!r} specified. "
            "Please use --action=print or --action=insert"
        )
