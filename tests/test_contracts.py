from __future__ import annotations

import json

import pytest

from chaintable.contracts.error import (
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


def test_envelope_json_omits_empty_hint() -> None:
    assert json.loads(ErrorEnvelope("BadInput", "nope").to_json()) == {
        "error": "BadInput",
        "detail": "nope",
    }
    payload = json.loads(ErrorEnvelope("IO", "missing", hint="check path").to_json())
    assert payload["hint"] == "check path"


def test_die_writes_envelope_and_exits(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        die(Exit.INVARIANT, "Invariant", "broken")
    assert excinfo.value.code == 3
    payload = json.loads(capsys.readouterr().err.strip())
    assert payload == {"error": "Invariant", "detail": "broken"}


@pytest.mark.parametrize(
    ("exc", "code", "label"),
    [
        (BadInputError("bad", hint="fix it"), Exit.BAD_INPUT, "BadInput"),
        (InvariantError("broken"), Exit.INVARIANT, "Invariant"),
        (PolicyError("nope"), Exit.POLICY, "Policy"),
        (IOErrorEnvelope("disk"), Exit.IO, "IO"),
        (EnvelopeError("generic"), Exit.POLICY, "Unhandled"),
        (FileNotFoundError("gone.csv"), Exit.IO, "FileNotFound"),
    ],
)
def test_guard_cli_maps_exceptions(
    capsys: pytest.CaptureFixture[str], exc: Exception, code: Exit, label: str
) -> None:
    @guard_cli
    def handler() -> int:
        raise exc

    with pytest.raises(SystemExit) as excinfo:
        handler()
    assert excinfo.value.code == int(code)
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert payload["error"] == label
    if isinstance(exc, EnvelopeError) and exc.hint:
        assert payload["hint"] == exc.hint


def test_default_hints_per_error_kind() -> None:
    assert BadInputError("bad").hint is None
    assert "--verbose" in (InvariantError("broken").hint or "")
    assert IOErrorEnvelope("disk").hint
    assert InvariantError("broken", hint="custom").hint == "custom"

    env = InvariantError("Size mismatch").envelope()
    assert env.error == "Invariant"
    assert env.detail == "Size mismatch"
    assert env.hint == InvariantError.default_hint


def test_missing_file_envelope_carries_hint(capsys: pytest.CaptureFixture[str]) -> None:
    @guard_cli
    def handler() -> int:
        raise FileNotFoundError("gone.csv")

    with pytest.raises(SystemExit):
        handler()
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert payload["hint"] == MISSING_FILE_HINT


def test_guard_cli_passes_through_result() -> None:
    @guard_cli
    def handler(value: int) -> int:
        return value + 1

    assert handler(1) == 2
