"""CLI command registration and handlers for chaintable."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from chaintable.contracts.error import Exit, InvariantError
from chaintable.workloads import DEFAULT_CSV_MAX_BYTES, DEFAULT_CSV_MAX_ROWS


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    run_csv: Callable[..., Dict[str, Any]]
    generate_csv: Callable[..., int]
    verify_csv: Callable[[str, bool], Tuple[bool, List[str]]]
    logger: logging.Logger
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]


def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "run-csv",
        "Replay a CSV workload and report counters, growth and bucket stats.",
        lambda parser: _configure_run_csv(parser, ctx),
    )
    _register(
        "generate-csv",
        "Generate a synthetic workload CSV.",
        lambda parser: _configure_generate(parser, ctx),
    )
    _register(
        "verify",
        "Replay a CSV workload and check the table's structural invariants.",
        lambda parser: _configure_verify(parser, ctx),
    )
    return handlers


def _configure_run_csv(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the CSV workload and exit without executing it",
    )
    parser.add_argument(
        "--csv-max-rows",
        type=int,
        default=DEFAULT_CSV_MAX_ROWS,
        help="Abort if CSV rows exceed this count (0 disables check)",
    )
    parser.add_argument(
        "--csv-max-bytes",
        type=int,
        default=DEFAULT_CSV_MAX_BYTES,
        help="Abort if CSV file size exceeds this many bytes (0 disables check)",
    )
    parser.add_argument(
        "--json-summary-out", type=str, default=None, help="Write final run stats to JSON"
    )
    parser.add_argument(
        "--metrics-out",
        type=str,
        default=None,
        help="Write final counters and gauges in Prometheus text format",
    )

    def handler(args: argparse.Namespace) -> int:
        result = ctx.run_csv(
            args.csv,
            dry_run=args.dry_run,
            csv_max_rows=args.csv_max_rows,
            csv_max_bytes=args.csv_max_bytes,
            json_summary_out=args.json_summary_out,
            metrics_out=args.metrics_out,
        )
        if result.get("status") == "validated":
            text = f"Validated {result['rows']} rows from {args.csv}"
        else:
            text = (
                f"ops={result['ops_total']} count={result['count']} "
                f"capacity={result['capacity']} grows={result['grows_total']} "
                f"load_factor={result['load_factor']:.3f} "
                f"max_bucket_len={result['max_bucket_len']}"
            )
        ctx.emit_success("run-csv", text=text, data=result)
        return int(Exit.OK)

    return handler


def _configure_generate(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--outfile", required=True)
    parser.add_argument("--ops", type=int, default=10_000)
    parser.add_argument("--read-ratio", type=float, default=0.5)
    parser.add_argument(
        "--del-ratio", type=float, default=0.2, help="Share of writes that are deletes"
    )
    parser.add_argument("--key-space", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=7)

    def handler(args: argparse.Namespace) -> int:
        rows = ctx.generate_csv(
            args.outfile,
            args.ops,
            args.read_ratio,
            args.del_ratio,
            args.key_space,
            args.seed,
        )
        ctx.emit_success(
            "generate-csv",
            text=f"Wrote {rows} ops to {args.outfile}",
            data={"outfile": args.outfile, "ops": rows, "seed": args.seed},
        )
        return int(Exit.OK)

    return handler


def _configure_verify(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--csv", required=True)
    parser.add_argument("--verbose", action="store_true")

    def handler(args: argparse.Namespace) -> int:
        ok, messages = ctx.verify_csv(args.csv, args.verbose)
        for msg in messages:
            ctx.logger.info(msg)
        if not ok:
            raise InvariantError("; ".join(messages) or "Table invariants violated")
        ctx.emit_success(
            "verify",
            text="OK",
            data={"csv": args.csv, "messages": messages},
        )
        return int(Exit.OK)

    return handler
