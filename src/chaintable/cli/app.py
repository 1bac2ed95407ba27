"""
app.py

Command-line front end for the separate-chaining hash table:
- run-csv: replay an op,key,value workload against a fresh table and report
  counters, capacity growth, bucket histogram and watchdog alerts
- generate-csv: write a deterministic synthetic workload
- verify: replay a workload and check the table's structural invariants

Errors leave as a JSON envelope on stderr with a stable exit code.
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from chaintable.cli.commands import CLIContext, register_subcommands
from chaintable.config import AppConfig, load_app_config
from chaintable.contracts.error import IOErrorEnvelope, PolicyError, guard_cli
from chaintable.core.table import (
    ChainedHashTable,
    TableConfig,
    TableStatsSink,
    collect_bucket_histogram,
    sample_metrics,
    verify_table,
)
from chaintable.metrics import Metrics, ThresholdWatchdog, apply_watchdog
from chaintable.workloads import (
    DEFAULT_CSV_MAX_BYTES,
    DEFAULT_CSV_MAX_ROWS,
    check_csv_size,
    generate_workload_csv,
    iter_workload_ops,
)

# --------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------
logger = logging.getLogger("chaintable")
logger.setLevel(logging.INFO)
logger.propagate = False

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 5


class JsonFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, DEFAULT_LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    """Configure console (and optional rotating file) logging."""

    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT)

    for handler in list(logger.handlers):
        with contextlib.suppress(Exception):
            handler.close()
        logger.removeHandler(handler)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


configure_logging()

APP_CONFIG: AppConfig = AppConfig()
OUTPUT_JSON: bool = False


def set_app_config(cfg: AppConfig) -> None:
    global APP_CONFIG
    APP_CONFIG = cfg


def emit_success(
    command: str, *, text: str | None = None, data: dict[str, Any] | None = None
) -> None:
    if OUTPUT_JSON:
        payload: dict[str, Any] = {"ok": True, "command": command}
        if data:
            payload.update(data)
        if text is not None and "result" not in payload:
            payload["result"] = text
        print(json.dumps(payload, ensure_ascii=False))
    else:
        if text is not None:
            print(text)


def build_table(
    metrics: Metrics | None = None, *, sink: TableStatsSink | None = None
) -> ChainedHashTable:
    table = ChainedHashTable(
        TableConfig(large_table_warn_threshold=APP_CONFIG.table.large_table_warn_threshold)
    )
    (sink or TableStatsSink(metrics)).attach(table)
    return table


# --------------------------------------------------------------------
# Ops runner
# --------------------------------------------------------------------
def run_op(
    table: ChainedHashTable,
    op: str,
    key: str,
    value: str | None,
    metrics: Metrics | None = None,
) -> str | None:
    if metrics:
        metrics.ops_total += 1
    if op == "put":
        if value is None:
            raise ValueError("PUT operations require a value")
        previous = table.insert(key, value)
        if metrics:
            metrics.inserts_total += 1
        return previous
    if op == "get":
        found = table.get(key)
        if metrics:
            metrics.gets_total += 1
            if found is None:
                metrics.misses_total += 1
            else:
                metrics.hits_total += 1
        return found
    if op == "del":
        removed = table.remove(key)
        if metrics:
            metrics.removes_total += 1
            if removed is None:
                metrics.misses_total += 1
            else:
                metrics.hits_total += 1
        return removed
    raise ValueError(f"unknown op: {op}")


def replay_csv(
    path: str,
    metrics: Metrics,
    *,
    events: list[dict[str, Any]] | None = None,
    csv_max_rows: int = DEFAULT_CSV_MAX_ROWS,
) -> ChainedHashTable:
    start = time.perf_counter()
    sink = TableStatsSink(metrics, events, clock=lambda: time.perf_counter() - start)
    table = build_table(sink=sink)
    for op, key, value in iter_workload_ops(path, max_rows=csv_max_rows):
        run_op(table, op, key, value, metrics)
    sample_metrics(table, metrics)
    return table


def run_csv(
    path: str,
    *,
    dry_run: bool = False,
    csv_max_rows: int = DEFAULT_CSV_MAX_ROWS,
    csv_max_bytes: int = DEFAULT_CSV_MAX_BYTES,
    json_summary_out: str | None = None,
    metrics_out: str | None = None,
) -> dict[str, Any]:
    """Replay a CSV workload and return the run summary.

    ``json_summary_out`` receives the summary as JSON and ``metrics_out`` the
    final counters in Prometheus text format.
    """

    size_bytes = check_csv_size(path, csv_max_bytes)

    if dry_run:
        rows = sum(1 for _ in iter_workload_ops(path, max_rows=csv_max_rows))
        logger.info("Validated %s (%d rows, %d bytes)", path, rows, size_bytes)
        return {"status": "validated", "csv": path, "rows": rows, "size_bytes": size_bytes}

    metrics = Metrics()
    events: list[dict[str, Any]] = []
    t0 = time.perf_counter()
    table = replay_csv(path, metrics, events=events, csv_max_rows=csv_max_rows)
    elapsed = time.perf_counter() - t0

    apply_watchdog(metrics, ThresholdWatchdog(APP_CONFIG.watchdog))
    summary: dict[str, Any] = {
        "status": "completed",
        "csv": path,
        "elapsed_seconds": elapsed,
        "ops_per_second": metrics.ops_total / elapsed if elapsed > 0 else 0.0,
        **metrics.to_dict(),
        "bucket_histogram": collect_bucket_histogram(table),
        "events": events,
    }
    logger.info(
        "Replayed %d ops: count=%d capacity=%d grows=%d",
        metrics.ops_total,
        metrics.count,
        metrics.capacity,
        metrics.grows_total,
    )

    if json_summary_out:
        _write_text(json_summary_out, json.dumps(summary, indent=2))
        logger.info("Wrote JSON summary: %s", json_summary_out)
    if metrics_out:
        _write_text(metrics_out, metrics.render())
        logger.info("Wrote metrics: %s", metrics_out)
    return summary


def _write_text(path: str, text: str) -> None:
    out_path = Path(path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise IOErrorEnvelope(str(exc)) from exc


def generate_csv(
    out_path: str,
    ops: int,
    read_ratio: float,
    del_ratio: float,
    key_space: int,
    seed: int,
) -> int:
    rows = generate_workload_csv(
        out_path,
        ops,
        read_ratio=read_ratio,
        del_ratio=del_ratio,
        key_space=key_space,
        seed=seed,
    )
    logger.info("Wrote workload CSV: %s (%d ops)", out_path, rows)
    return rows


def verify_csv(path: str, verbose: bool = False) -> tuple[bool, list[str]]:
    table = replay_csv(path, Metrics())
    return verify_table(table, verbose)


def main(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        description="Separate-chaining hash table: workload replay, generation and verification."
    )
    p.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional log file path (rotates at 5MB, keeps 5 backups by default)",
    )
    p.add_argument(
        "--log-max-bytes",
        type=int,
        default=DEFAULT_LOG_MAX_BYTES,
        help="Max bytes per log file before rotation (default: %(default)s)",
    )
    p.add_argument(
        "--log-backup-count",
        type=int,
        default=DEFAULT_LOG_BACKUP_COUNT,
        help="Number of rotated log files to keep (default: %(default)s)",
    )
    p.add_argument(
        "--json", action="store_true", help="Emit machine-readable success output to stdout"
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to TOML config file (env: CHAINTABLE_CONFIG)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ctx = CLIContext(
        emit_success=emit_success,
        run_csv=run_csv,
        generate_csv=generate_csv,
        verify_csv=verify_csv,
        logger=logger,
        guard=guard_cli,
    )
    handlers = register_subcommands(sub, ctx)

    args = p.parse_args(argv)

    global OUTPUT_JSON
    OUTPUT_JSON = bool(args.json)

    configure_logging(
        args.log_json,
        args.log_file,
        max_bytes=args.log_max_bytes,
        backup_count=args.log_backup_count,
    )

    cfg_path = args.config or os.getenv("CHAINTABLE_CONFIG")
    cfg = guard_cli(load_app_config)(cfg_path)
    set_app_config(cfg)
    if cfg_path:
        logger.info("Loaded config from %s", cfg_path)

    handler = handlers.get(args.cmd)
    if handler is None:
        raise PolicyError(f"Unknown command {args.cmd}")
    return handler(args)


def console_main() -> None:
    """Entry point for console_scripts."""

    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("Fatal error: %s", e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    console_main()
