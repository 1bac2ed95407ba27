"""Reading and generating ``op,key,value`` workload CSV files."""

from __future__ import annotations

import csv
import random
from pathlib import Path
from typing import Iterator, Optional, Tuple

from chaintable.contracts.error import BadInputError, IOErrorEnvelope

CSV_HINT = "Workload CSV needs header op,key,value with op in put/get/del"
DEFAULT_CSV_MAX_ROWS = 5_000_000
DEFAULT_CSV_MAX_BYTES = 500 * 1024 * 1024

VALID_OPS = frozenset({"put", "get", "del"})


def check_csv_size(path: str, max_bytes: int) -> int:
    try:
        size_bytes = Path(path).stat().st_size
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    if max_bytes and max_bytes > 0 and size_bytes > max_bytes:
        raise BadInputError(
            f"CSV file is {size_bytes} bytes which exceeds limit {max_bytes}",
            hint=CSV_HINT,
        )
    return size_bytes


def iter_workload_ops(
    path: str, max_rows: int = DEFAULT_CSV_MAX_ROWS
) -> Iterator[Tuple[str, str, Optional[str]]]:
    """Yield validated ``(op, key, value)`` rows; ``value`` is ``None`` except for puts."""

    row_counter = 0
    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            fieldnames = reader.fieldnames or []
            required = {"op", "key", "value"}
            header = {fn.strip() for fn in fieldnames}
            missing = required - header
            if missing:
                raise BadInputError(
                    f"Missing header columns: {', '.join(sorted(missing))}", hint=CSV_HINT
                )
            unexpected = header - required
            if unexpected:
                raise BadInputError(
                    f"Unexpected column(s) in header: {', '.join(sorted(unexpected))}",
                    hint=CSV_HINT,
                )
            for row in reader:
                row_counter += 1
                if max_rows and max_rows > 0 and row_counter > max_rows:
                    raise BadInputError(
                        f"CSV row limit exceeded ({row_counter} > {max_rows})", hint=CSV_HINT
                    )
                op = (row.get("op") or "").strip().lower()
                key = (row.get("key") or "").strip()
                value = row.get("value")
                line_no = reader.line_num
                if not op:
                    raise BadInputError(f"Missing op at line {line_no}", hint=CSV_HINT)
                if op not in VALID_OPS:
                    raise BadInputError(f"Unknown op '{op}' at line {line_no}", hint=CSV_HINT)
                if not key:
                    raise BadInputError(f"Missing key at line {line_no}", hint=CSV_HINT)
                if op == "put":
                    if value is None or value.strip() == "":
                        raise BadInputError(f"PUT missing value at line {line_no}", hint=CSV_HINT)
                else:
                    value = None
                yield op, key, value
    except FileNotFoundError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    except BadInputError:
        raise
    except OSError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    except (csv.Error, UnicodeDecodeError) as exc:
        raise BadInputError(str(exc), hint=CSV_HINT) from exc


def generate_workload_csv(
    out_path: str,
    ops: int,
    read_ratio: float = 0.5,
    del_ratio: float = 0.2,
    key_space: int = 1000,
    seed: int = 7,
) -> int:
    """Write a deterministic uniform workload and return the number of rows."""

    if ops <= 0:
        raise BadInputError("ops must be > 0")
    if not 0.0 <= read_ratio <= 1.0:
        raise BadInputError("read_ratio must be in [0, 1]")
    if not 0.0 <= del_ratio < 1.0:
        raise BadInputError("del_ratio must be in [0, 1)")
    if key_space <= 0:
        raise BadInputError("key_space must be > 0")
    rng = random.Random(seed)  # noqa: S311  # nosec B311 - deterministic workload sampler
    try:
        with open(out_path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["op", "key", "value"])
            for _ in range(ops):
                key = f"K{rng.randrange(key_space)}"
                if rng.random() < read_ratio:
                    w.writerow(["get", key, ""])
                elif rng.random() < del_ratio:
                    w.writerow(["del", key, ""])
                else:
                    w.writerow(["put", key, str(rng.randint(0, 1_000_000))])
    except OSError as exc:
        raise IOErrorEnvelope(str(exc)) from exc
    return ops
