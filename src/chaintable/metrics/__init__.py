from .core import Metrics, ThresholdWatchdog, apply_watchdog

__all__ = ["Metrics", "ThresholdWatchdog", "apply_watchdog"]
