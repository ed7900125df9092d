"""
ETL Module

Extract, Transform, and Load steps of the sales aggregation pipeline.
"""

from .extract_funcs import RecordBatch, S3RecordSource, parse_records
from .transform_funcs import (
    DEFAULT_SCHEMA,
    RowSchema,
    SalesAggregates,
    SalesRecord,
    aggregate_sales,
    decode_row,
    format_aggregate,
)
from .load_funcs import (
    LoadFailurePolicy,
    LoadReport,
    WarehousePool,
    insert_aggregate,
)

__all__ = [
    "RecordBatch",
    "S3RecordSource",
    "parse_records",
    "DEFAULT_SCHEMA",
    "RowSchema",
    "SalesAggregates",
    "SalesRecord",
    "aggregate_sales",
    "decode_row",
    "format_aggregate",
    "LoadFailurePolicy",
    "LoadReport",
    "WarehousePool",
    "insert_aggregate",
]
