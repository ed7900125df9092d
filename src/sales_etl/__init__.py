"""
Sales Aggregation Pipeline

Reads the sales export from S3, totals it by product and by country and
loads the totals into the warehouse.
"""

__version__ = "1.0.0"
__author__ = "Data Engineering Team"

__all__ = [
    "__version__",
    "__author__",
]
