"""Exit codes and error envelopes for the chaintable CLI."""

from .error import (
    MISSING_FILE_HINT,
    BadInputError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    InvariantError,
    IOErrorEnvelope,
    PolicyError,
    die,
    guard_cli,
)

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
