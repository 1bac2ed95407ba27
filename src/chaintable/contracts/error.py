"""Error envelopes and exit codes for the chaintable CLI.

Each ``EnvelopeError`` subclass carries its own envelope label, exit code and
fallback hint, so ``guard_cli`` only has to ask the exception how to leave.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, ClassVar, NoReturn, TypeVar

logger = logging.getLogger("chaintable")
T = TypeVar("T")

MISSING_FILE_HINT = "Check the --csv / --config path"


class Exit(IntEnum):
    """Stable exit codes shared across the CLI."""

    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5


@dataclass(slots=True)
class ErrorEnvelope:
    """Machine-readable error contract for CLI failures."""

    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {"error": self.error, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Write the JSON envelope to stderr and exit with ``code``."""

    sys.stderr.write(ErrorEnvelope(error=kind, detail=detail, hint=hint).to_json() + "\n")
    sys.stderr.flush()
    sys.exit(int(code))


class EnvelopeError(Exception):
    """Base for failures that leave the CLI as an envelope."""

    kind: ClassVar[str] = "Unhandled"
    exit_code: ClassVar[Exit] = Exit.POLICY
    default_hint: ClassVar[str | None] = None

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint if hint is not None else self.default_hint

    def envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(error=self.kind, detail=str(self), hint=self.hint)


class BadInputError(EnvelopeError):
    """Malformed workload rows, flags or config values."""

    kind = "BadInput"
    exit_code = Exit.BAD_INPUT


class InvariantError(EnvelopeError):
    """A replayed table failed ``verify_table``."""

    kind = "Invariant"
    exit_code = Exit.INVARIANT
    default_hint = "Re-run verify with --verbose for capacity, count and bucket stats"


class PolicyError(EnvelopeError):
    """Unsupported command or option combination."""

    kind = "Policy"


class IOErrorEnvelope(EnvelopeError):
    """Workload or output file could not be read or written."""

    kind = "IO"
    exit_code = Exit.IO
    default_hint = "Check that the path exists and is readable/writable"


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Wrap a CLI handler so failures leave as an envelope plus exit code."""

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except EnvelopeError as exc:
            env = exc.envelope()
            die(exc.exit_code, env.error, env.detail, hint=env.hint)
        except FileNotFoundError as exc:
            die(Exit.IO, "FileNotFound", str(exc), hint=MISSING_FILE_HINT)
        except Exception as exc:
            logger.exception("Unhandled CLI exception")
            die(Exit.POLICY, "Unhandled", f"{type(exc).__name__}: {exc}")

    return _wrapped


__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "InvariantError",
    "PolicyError",
    "IOErrorEnvelope",
    "MISSING_FILE_HINT",
    "guard_cli",
    "die",
]
