# pingstat/core/scheduler.py

import asyncio
import itertools
import logging
import os
from typing import Optional

from pingstat.core.state import ProbeState
from pingstat.core.store import MetricsStore
from pingstat.prober.base import Client, Pinger, failure
from pingstat.schemas import PingOutcome, TargetSpec

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0

# ICMP identifiers, unique per pinger across the process (mod 2**16)
_idents = itertools.count(os.getpid() & 0xFFFF)


def next_ident() -> int:
    return next(_idents) & 0xFFFF


class ProbeScheduler:
    """
    Pings one target forever on a fixed cadence.

    Each tick advances an absolute deadline by the interval, launches one
    exchange as its own task and sleeps until the deadline, so slow or lost
    replies never delay the schedule. A finished exchange records its outcome
    and returns its pinger through the state's slot for the next tick.
    """

    def __init__(self, spec: TargetSpec, client: Client, store: MetricsStore):
        self.spec = spec
        self.client = client
        self.store = store
        self.interval = spec.interval or DEFAULT_INTERVAL
        self.metrics_key = spec.metrics_key
        self.state = ProbeState()
        self.ticks = 0
        self._inflight: set[asyncio.Task] = set()

    async def run(self, max_ticks: Optional[int] = None) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        logger.info("probing %s every %ss (netns=%s)",
                    self.spec.target, self.interval, self.spec.netns or "-")

        while max_ticks is None or self.ticks < max_ticks:
            deadline += self.interval
            self.dispatch()
            self.ticks += 1
            await asyncio.sleep(max(0.0, deadline - loop.time()))

    def dispatch(self) -> asyncio.Task:
        pinger = self.state.checkout()
        if pinger is None:
            # first tick, or the previous exchange is still in flight
            pinger = self.client.pinger(self.spec.target, next_ident(), self.spec.timeout)
            self.state.pingers_created += 1
        sequence = self.state.next_sequence()

        task = asyncio.get_running_loop().create_task(self._exchange(pinger, sequence))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def drain(self) -> None:
        """Wait for every exchange still in flight."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight))

    async def _exchange(self, pinger: Pinger, sequence: int) -> PingOutcome:
        try:
            outcome = await pinger.ping(sequence)
        except Exception as err:
            logger.exception("ping %s seq=%d crashed", self.spec.target, sequence)
            outcome = failure(self.spec.target, getattr(pinger, "ident", 0), sequence,
                              "error", str(err))

        if outcome.get("status") != "echo_reply":
            logger.warning("ping %s seq=%d failed: %s %s", self.spec.target, sequence,
                           outcome.get("status"), outcome.get("detail") or "")
        self.store.record_outcome(self.metrics_key, outcome)
        self.state.checkin(pinger)
        return outcome
