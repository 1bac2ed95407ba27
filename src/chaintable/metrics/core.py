from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from chaintable.config import WatchdogPolicy

logger = logging.getLogger("chaintable")


class Metrics:
    def __init__(self) -> None:
        self.ops_total = 0
        self.inserts_total = 0
        self.gets_total = 0
        self.removes_total = 0
        self.hits_total = 0
        self.misses_total = 0
        self.grows_total = 0
        self.count = 0
        self.capacity = 0
        self.load_factor = 0.0
        self.max_bucket_len = 0
        self.alert_flags: Dict[str, bool] = {}
        self.active_alerts: List[Dict[str, Any]] = []

    def render(self) -> str:
        lines = [
            "# HELP chaintable_ops_total Total operations processed",
            "# TYPE chaintable_ops_total counter",
            f"chaintable_ops_total {self.ops_total}",
            "# HELP chaintable_inserts_total Total insert operations",
            "# TYPE chaintable_inserts_total counter",
            f"chaintable_inserts_total {self.inserts_total}",
            "# HELP chaintable_gets_total Total get operations",
            "# TYPE chaintable_gets_total counter",
            f"chaintable_gets_total {self.gets_total}",
            "# HELP chaintable_removes_total Total remove operations",
            "# TYPE chaintable_removes_total counter",
            f"chaintable_removes_total {self.removes_total}",
            "# HELP chaintable_hits_total Lookups and removals that found their key",
            "# TYPE chaintable_hits_total counter",
            f"chaintable_hits_total {self.hits_total}",
            "# HELP chaintable_misses_total Lookups and removals that found nothing",
            "# TYPE chaintable_misses_total counter",
            f"chaintable_misses_total {self.misses_total}",
            "# HELP chaintable_grows_total Capacity doublings",
            "# TYPE chaintable_grows_total counter",
            f"chaintable_grows_total {self.grows_total}",
            "# HELP chaintable_count Live entries",
            "# TYPE chaintable_count gauge",
            f"chaintable_count {self.count}",
            "# HELP chaintable_capacity Bucket count",
            "# TYPE chaintable_capacity gauge",
            f"chaintable_capacity {self.capacity}",
            "# HELP chaintable_load_factor Entries per bucket",
            "# TYPE chaintable_load_factor gauge",
            f"chaintable_load_factor {self.load_factor:.6f}",
            "# HELP chaintable_max_bucket_len Longest chain",
            "# TYPE chaintable_max_bucket_len gauge",
            f"chaintable_max_bucket_len {self.max_bucket_len}",
        ]
        if self.alert_flags:
            lines.append("# HELP chaintable_alert_active Guardrail alert state (1=active)")
            lines.append("# TYPE chaintable_alert_active gauge")
            for metric, active in sorted(self.alert_flags.items()):
                lines.append(f'chaintable_alert_active{{metric="{metric}"}} {1 if active else 0}')
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ops_total": self.ops_total,
            "inserts_total": self.inserts_total,
            "gets_total": self.gets_total,
            "removes_total": self.removes_total,
            "hits_total": self.hits_total,
            "misses_total": self.misses_total,
            "grows_total": self.grows_total,
            "count": self.count,
            "capacity": self.capacity,
            "load_factor": self.load_factor,
            "max_bucket_len": self.max_bucket_len,
            "alerts": list(self.active_alerts),
        }


class ThresholdWatchdog:
    """Evaluate table gauges against configured guardrails and emit alerts."""

    def __init__(self, policy: WatchdogPolicy) -> None:
        self.policy = policy
        self._state: Dict[str, bool] = {}

    def evaluate(self, sample: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, bool]]:
        if not self.policy.enabled:
            if any(self._state.values()):
                logger.info(
                    "Watchdog disabled; clearing %d active alerts",
                    sum(1 for active in self._state.values() if active),
                )
            self._state.clear()
            return [], {}

        alerts: List[Dict[str, Any]] = []
        flags: Dict[str, bool] = {}

        checks = [
            (
                "load_factor",
                sample.get("load_factor"),
                self.policy.load_factor_warn,
                "Load factor guardrail exceeded",
            ),
            (
                "max_bucket_len",
                sample.get("max_bucket_len"),
                self.policy.max_bucket_len_warn,
                "Bucket length guardrail exceeded",
            ),
        ]

        for metric, raw_value, threshold, prefix in checks:
            if threshold is None:
                if self._state.pop(metric, False):
                    logger.info("Watchdog cleared (%s): threshold disabled", metric)
                continue

            value = self._safe_float(raw_value)
            active = value is not None and value >= threshold
            was_active = self._state.get(metric, False)

            if active:
                if not was_active:
                    logger.warning("Watchdog alert (%s): %.3f >= %.3f", metric, value, threshold)
                alerts.append(
                    {
                        "metric": metric,
                        "value": value,
                        "threshold": threshold,
                        "severity": "warning",
                        "message": f"{prefix}: {value:.3f} >= {threshold:.3f}",
                    }
                )
            elif was_active:
                value_repr = "n/a" if value is None else f"{value:.3f}"
                logger.info("Watchdog resolved (%s): value=%s < %.3f", metric, value_repr, threshold)

            self._state[metric] = active
            flags[metric] = active

        return alerts, flags

    @staticmethod
    def _safe_float(value: Any) -> Optional[float]:
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None


def apply_watchdog(metrics: Metrics, watchdog: ThresholdWatchdog) -> List[Dict[str, Any]]:
    alerts, flags = watchdog.evaluate(metrics.to_dict())
    metrics.active_alerts = alerts
    metrics.alert_flags = flags
    return alerts
