# pingstat/core/store.py
import threading
from typing import Iterator, Optional

from pingstat.core.state import MetricsRecord
from pingstat.schemas import MetricsKey, PingOutcome


class _Entry:
    __slots__ = ("lock", "record")

    def __init__(self, record: MetricsRecord):
        self.lock = threading.Lock()
        self.record = record


class MetricsStore:
    """
    Per-target counters updated from many concurrent exchanges.

    Each key has its own lock, so a record() call applies its whole delta
    atomically without blocking updates to other keys. The store-wide lock is
    only taken the first time a key is seen, and a new key is published
    together with its first delta.
    """

    def __init__(self):
        self._entries: dict[MetricsKey, _Entry] = {}
        self._lock = threading.Lock()

    def add(self, key: MetricsKey, delta: MetricsRecord) -> None:
        entry = self._entries.get(key)
        if entry is None:
            with self._lock:
                entry = self._entries.get(key)
                if entry is None:
                    self._entries[key] = _Entry(delta)
                    return
        with entry.lock:
            entry.record = entry.record + delta

    def record(self, key: MetricsKey, success: bool, duration: Optional[float] = None) -> None:
        self.add(key, MetricsRecord.from_outcome(success, duration))

    def record_outcome(self, key: MetricsKey, outcome: PingOutcome) -> None:
        self.record(key, outcome.get("status") == "echo_reply", outcome.get("rtt"))

    def get(self, key: MetricsKey) -> Optional[MetricsRecord]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        with entry.lock:
            return entry.record

    def snapshot(self) -> Iterator[tuple[MetricsKey, MetricsRecord]]:
        # each record is consistent on its own; keys are not read at one instant
        for key, entry in list(self._entries.items()):
            with entry.lock:
                record = entry.record
            yield key, record
