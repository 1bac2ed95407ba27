from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from chaintable.metrics import Metrics


logger = logging.getLogger("chaintable")


@dataclass
class _Entry:
    key: Any
    value: Any


@dataclass
class TableConfig:
    large_table_warn_threshold: int = 1_000_000
    on_grow: Optional[Callable[[int, int], None]] = None


class ChainedHashTable:
    """Hash table with separate chaining and doubling growth.

    Capacity starts at zero and doubles (1, 2, 4, ...) whenever an insert
    finds the table empty or holding more than three quarters of its
    capacity. Lookups and removals never resize.
    """

    __slots__ = ("cfg", "_buckets", "_count")

    def __init__(self, cfg: Optional[TableConfig] = None) -> None:
        self.cfg = cfg or TableConfig()
        self._buckets: List[List[_Entry]] = []
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __contains__(self, key: Any) -> bool:
        return self._find(key) is not None

    @property
    def capacity(self) -> int:
        return len(self._buckets)

    def is_empty(self) -> bool:
        return self._count == 0

    def load_factor(self) -> float:
        return self._count / self.capacity if self.capacity else 0.0

    def _bucket_index(self, key: Any, capacity: int) -> int:
        # capacity is a power of two, so masking equals hash % capacity
        return hash(key) & (capacity - 1)

    def _needs_grow(self) -> bool:
        return self.is_empty() or self._count * 4 > self.capacity * 3

    def _grow(self) -> None:
        old_capacity = self.capacity
        new_capacity = old_capacity * 2 if old_capacity else 1
        if self._count >= self.cfg.large_table_warn_threshold:
            logger.warning(
                "Large table grow (entries=%d, capacity %d -> %d)",
                self._count,
                old_capacity,
                new_capacity,
            )
        new_buckets: List[List[_Entry]] = [[] for _ in range(new_capacity)]
        for bucket in self._buckets:
            for entry in bucket:
                new_buckets[self._bucket_index(entry.key, new_capacity)].append(entry)
        self._buckets = new_buckets
        logger.debug(
            "Grew table capacity %d -> %d (entries=%d)", old_capacity, new_capacity, self._count
        )
        if self.cfg.on_grow:
            try:
                self.cfg.on_grow(old_capacity, new_capacity)
            except Exception:
                logger.exception("on_grow callback failed")

    def _find(self, key: Any) -> Optional[_Entry]:
        if not self._buckets:
            return None
        for entry in self._buckets[self._bucket_index(key, self.capacity)]:
            if entry.key == key:
                return entry
        return None

    def insert(self, key: Any, value: Any) -> Optional[Any]:
        """Store ``value`` under ``key`` and return the value it replaced, if any."""

        if self._needs_grow():
            self._grow()
        bucket = self._buckets[self._bucket_index(key, self.capacity)]
        for entry in bucket:
            if entry.key == key:
                previous = entry.value
                entry.value = value
                return previous
        bucket.append(_Entry(key, value))
        self._count += 1
        return None

    def get(self, key: Any) -> Optional[Any]:
        entry = self._find(key)
        return entry.value if entry is not None else None

    def remove(self, key: Any) -> Optional[Any]:
        """Detach ``key`` and return its value; ``None`` when it was absent."""

        if not self._buckets:
            return None
        bucket = self._buckets[self._bucket_index(key, self.capacity)]
        for idx, entry in enumerate(bucket):
            if entry.key == key:
                bucket[idx] = bucket[-1]
                bucket.pop()
                self._count -= 1
                return entry.value
        return None

    def bucket_lengths(self) -> List[int]:
        return [len(bucket) for bucket in self._buckets]

    def max_bucket_len(self) -> int:
        return max(self.bucket_lengths(), default=0)


class TableStatsSink:
    """Bridge table growth events into Metrics counters and event logs."""

    def __init__(
        self,
        metrics: Optional["Metrics"],
        events: Optional[List[Dict[str, Any]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.metrics = metrics
        self.events = events
        self.clock = clock or (lambda: 0.0)

    def inc_grows(self) -> None:
        if self.metrics:
            self.metrics.grows_total += 1

    def record_event(self, kind: str, payload: Optional[Dict[str, Any]] = None) -> None:
        if self.events is None:
            return
        event = {"type": kind, "t": self.clock()}
        if payload:
            event.update(payload)
        self.events.append(event)

    def attach(self, table: ChainedHashTable) -> None:
        """Hook this sink into ``table``'s grows.

        The table gets its own copy of its config, so a ``TableConfig`` shared
        with other tables is left untouched. A callback already set on it still
        runs after the sink records the grow.
        """

        previous = table.cfg.on_grow

        def on_grow(old: int, new: int) -> None:
            self.inc_grows()
            self.record_event("grow", {"from": old, "to": new, "entries": len(table)})
            if previous is not None:
                previous(old, new)

        table.cfg = replace(table.cfg, on_grow=on_grow)


def sample_metrics(table: ChainedHashTable, metrics: "Metrics") -> None:
    metrics.count = len(table)
    metrics.capacity = table.capacity
    metrics.load_factor = table.load_factor()
    metrics.max_bucket_len = table.max_bucket_len()


def collect_bucket_histogram(table: ChainedHashTable) -> List[List[int]]:
    """Return ``[[bucket_len, n_buckets], ...]`` sorted by bucket length."""

    histogram: Dict[int, int] = defaultdict(int)
    for length in table.bucket_lengths():
        histogram[length] += 1
    return [[length, n] for length, n in sorted(histogram.items())]


def verify_table(table: ChainedHashTable, verbose: bool = False) -> Tuple[bool, List[str]]:
    msgs: List[str] = []
    buckets = table._buckets
    capacity = len(buckets)

    summed = sum(len(bucket) for bucket in buckets)
    size_ok = summed == len(table)
    if not size_ok:
        msgs.append(f"Size mismatch: count={len(table)}, summed={summed}")

    cap_ok = capacity == 0 or (capacity & (capacity - 1)) == 0
    if not cap_ok:
        msgs.append(f"Capacity {capacity} is not a power of two")

    # equal keys hash equal, so duplicates can only share a bucket
    placement_ok = True
    unique_ok = True
    for idx, bucket in enumerate(buckets):
        for pos, entry in enumerate(bucket):
            if cap_ok and table._bucket_index(entry.key, capacity) != idx:
                placement_ok = False
                msgs.append(f"Key {entry.key!r} stored in bucket {idx} but hashes elsewhere")
            if any(entry.key == other.key for other in bucket[:pos]):
                unique_ok = False
                msgs.append(f"Duplicate key {entry.key!r} in bucket {idx}")

    if verbose:
        msgs.append(
            f"Capacity={capacity}, Count={len(table)}, "
            f"LF={table.load_factor():.3f}, MaxBucketLen={table.max_bucket_len()}"
        )
    return (size_ok and cap_ok and placement_ok and unique_ok), msgs


__all__ = [
    "ChainedHashTable",
    "TableConfig",
    "TableStatsSink",
    "collect_bucket_histogram",
    "sample_metrics",
    "verify_table",
]
