# pingstat/core/state.py
import asyncio
from dataclasses import dataclass, field

SEQUENCE_MODULO = 1 << 16


@dataclass(frozen=True)
class MetricsRecord:
    total_pings: int = 0
    successful_pings: int = 0
    cumulative_success_duration: float = 0.0   # seconds, successful exchanges only

    @classmethod
    def from_outcome(cls, success: bool, duration: float | None = None) -> "MetricsRecord":
        if success:
            return cls(1, 1, duration or 0.0)
        return cls(1, 0, 0.0)

    def __add__(self, other: "MetricsRecord") -> "MetricsRecord":
        return MetricsRecord(
            self.total_pings + other.total_pings,
            self.successful_pings + other.successful_pings,
            self.cumulative_success_duration + other.cumulative_success_duration,
        )


@dataclass
class ProbeState:
    """
    Per-target scheduler state, owned by that target's scheduling task.

    `slot` is a single-slot return channel: a finished exchange puts its pinger
    back, the next tick takes it without waiting.
    """
    sequence: int = 0
    slot: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=1))
    pingers_created: int = 0

    def next_sequence(self) -> int:
        seq = self.sequence
        self.sequence = (seq + 1) % SEQUENCE_MODULO
        return seq

    def checkout(self):
        try:
            return self.slot.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def checkin(self, pinger) -> bool:
        """Offer a pinger for reuse; False if the slot already holds one."""
        try:
            self.slot.put_nowait(pinger)
        except asyncio.QueueFull:
            return False
        return True
