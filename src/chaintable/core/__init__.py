from .table import (
    ChainedHashTable,
    TableConfig,
    TableStatsSink,
    collect_bucket_histogram,
    sample_metrics,
    verify_table,
)

__all__ = [
    "ChainedHashTable",
    "TableConfig",
    "TableStatsSink",
    "collect_bucket_histogram",
    "sample_metrics",
    "verify_table",
]
