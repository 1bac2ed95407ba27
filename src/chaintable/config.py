"""Typed configuration loader for chaintable."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import BadInputError

CONFIG_HINT = "Check the [table]/[watchdog] keys or the matching env overrides"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}
_DISABLED = {"none", "null", "disabled", "off"}


@dataclass
class TablePolicy:
    large_table_warn_threshold: int = 1_000_000

    def validate(self) -> None:
        value = self.large_table_warn_threshold
        if not isinstance(value, int) or isinstance(value, bool):
            raise BadInputError("table.large_table_warn_threshold must be an integer")
        if value < 0:
            raise BadInputError("table.large_table_warn_threshold must be >= 0")


@dataclass
class WatchdogPolicy:
    enabled: bool = True
    load_factor_warn: float | None = None
    max_bucket_len_warn: float | None = 8.0

    def validate(self) -> None:
        if self.load_factor_warn is not None and self.load_factor_warn <= 0.0:
            raise BadInputError("watchdog.load_factor_warn must be > 0 when set")
        if self.max_bucket_len_warn is not None and self.max_bucket_len_warn < 1.0:
            raise BadInputError("watchdog.max_bucket_len_warn must be >= 1 when set")


def _parse_bool(raw: Any, label: str) -> bool:
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUTHY:
            return True
        if normalized in _FALSY:
            return False
        raise BadInputError(f"{label} must be boolean")
    return bool(raw)


def _optional_float(raw: Any, label: str) -> float | None:
    if raw is None or (isinstance(raw, str) and raw.strip().lower() in _DISABLED):
        return None
    if isinstance(raw, bool):
        raise BadInputError(f"{label} must be a number or 'none'")
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise BadInputError(f"{label} must be a number or 'none'") from exc


_WATCHDOG_KEYS = {"enabled", "load_factor_warn", "max_bucket_len_warn"}
_WATCHDOG_ENV = {
    "load_factor_warn": "WATCHDOG_LOAD_FACTOR_WARN",
    "max_bucket_len_warn": "WATCHDOG_BUCKET_LEN_WARN",
}


@dataclass
class AppConfig:
    table: TablePolicy = field(default_factory=TablePolicy)
    watchdog: WatchdogPolicy = field(default_factory=WatchdogPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        try:
            if path is None:
                cfg = cls()
            else:
                try:
                    data = tomllib.loads(path.read_text(encoding="utf-8"))
                except FileNotFoundError as exc:
                    raise BadInputError(f"Config file not found: {path}") from exc
                except tomllib.TOMLDecodeError as exc:
                    raise BadInputError(f"Invalid TOML: {exc}") from exc
                cfg = cls.from_dict(data)
            cfg.apply_env_overrides(os.environ)
            cfg.validate()
        except BadInputError as exc:
            if exc.hint is None:
                exc.hint = CONFIG_HINT
            raise
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        table_data = data.get("table", {})
        if not isinstance(table_data, dict):
            raise BadInputError("[table] section must be a table")
        try:
            table = TablePolicy(**table_data)
        except TypeError as exc:
            raise BadInputError(f"Unknown key in [table]: {exc}") from exc

        watchdog_data = data.get("watchdog", {})
        if not isinstance(watchdog_data, dict):
            raise BadInputError("[watchdog] section must be a table")
        unknown = set(watchdog_data) - _WATCHDOG_KEYS
        if unknown:
            raise BadInputError(f"Unknown key(s) in [watchdog]: {', '.join(sorted(unknown))}")

        watchdog_kwargs: dict[str, Any] = {}
        if "enabled" in watchdog_data:
            watchdog_kwargs["enabled"] = _parse_bool(watchdog_data["enabled"], "watchdog.enabled")
        for key in _WATCHDOG_ENV:
            if key in watchdog_data:
                watchdog_kwargs[key] = _optional_float(watchdog_data[key], f"watchdog.{key}")

        return cls(table=table, watchdog=WatchdogPolicy(**watchdog_kwargs))

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        raw_threshold = env.get("TABLE_LARGE_WARN_THRESHOLD")
        if raw_threshold is not None:
            try:
                self.table.large_table_warn_threshold = int(raw_threshold)
            except ValueError as exc:
                raise BadInputError(
                    f"Invalid env override TABLE_LARGE_WARN_THRESHOLD={raw_threshold!r}"
                ) from exc

        raw_enabled = env.get("WATCHDOG_ENABLED")
        if raw_enabled is not None:
            self.watchdog.enabled = _parse_bool(
                raw_enabled, f"Invalid env override WATCHDOG_ENABLED={raw_enabled!r}:"
            )

        for key, env_name in _WATCHDOG_ENV.items():
            raw = env.get(env_name)
            if raw is not None:
                setattr(
                    self.watchdog,
                    key,
                    _optional_float(raw, f"Invalid env override {env_name}={raw!r}:"),
                )

    def validate(self) -> None:
        self.table.validate()
        self.watchdog.validate()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)
