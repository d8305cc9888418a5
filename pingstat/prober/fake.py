# pingstat/prober/fake.py
import asyncio
from collections import deque

from pingstat.prober.base import Client, Pinger, failure


class FakeClient(Client):
    """
    script: dict[target str] -> deque of (status, delay_s) tuples to play back, one per ping.
    If no scripted entry is left, the ping succeeds after `delay` seconds.
    Every created pinger and every sent (target, ident, sequence) is recorded.
    """
    def __init__(self, key=None, script=None, delay=0.0):
        self.key = key
        self.delay = delay
        self.script = {}
        if script:
            for k, v in script.items():
                self.script[k] = deque(v)
        self.pingers = []
        self.sent = []

    def pinger(self, target, ident, timeout=None):
        p = FakePinger(self, target, ident, timeout)
        self.pingers.append(p)
        return p


class FakePinger(Pinger):
    def __init__(self, client, target, ident, timeout=None):
        self.client = client
        self.target = target
        self.ident = ident
        self.timeout = timeout

    async def ping(self, sequence):
        self.client.sent.append((str(self.target), self.ident, sequence))
        status, delay = "echo_reply", self.client.delay
        dq = self.client.script.get(str(self.target))
        if dq:
            status, delay = dq.popleft()

        if self.timeout is not None and delay > self.timeout:
            await asyncio.sleep(self.timeout)
            return failure(self.target, self.ident, sequence, "timeout")
        await asyncio.sleep(delay)
        if status != "echo_reply":
            return failure(self.target, self.ident, sequence, status)
        return {
            "target": str(self.target),
            "ident": self.ident,
            "sequence": sequence,
            "status": "echo_reply",
            "rtt": delay,
            "detail": "",
        }
