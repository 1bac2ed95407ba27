from .csv_ops import (
    CSV_HINT,
    DEFAULT_CSV_MAX_BYTES,
    DEFAULT_CSV_MAX_ROWS,
    check_csv_size,
    generate_workload_csv,
    iter_workload_ops,
)

__all__ = [
    "CSV_HINT",
    "DEFAULT_CSV_MAX_BYTES",
    "DEFAULT_CSV_MAX_ROWS",
    "check_csv_size",
    "generate_workload_csv",
    "iter_workload_ops",
]
