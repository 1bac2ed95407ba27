import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
if SRC.exists():
    sys.path.insert(0, str(SRC))

# Register shared Hypothesis profiles for deterministic CI runs and fast local loops.
from tests.util import hypothesis_profiles  # noqa: E402,F401  pylint: disable=unused-import

from chaintable.core.table import ChainedHashTable  # noqa: E402

_CONFIG_ENV_VARS = (
    "CHAINTABLE_CONFIG",
    "TABLE_LARGE_WARN_THRESHOLD",
    "WATCHDOG_ENABLED",
    "WATCHDOG_LOAD_FACTOR_WARN",
    "WATCHDOG_BUCKET_LEN_WARN",
)


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer shell overrides out of config-sensitive tests."""

    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def table() -> ChainedHashTable:
    return ChainedHashTable()
