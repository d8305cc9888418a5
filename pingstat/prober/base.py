# pingstat/prober/base.py
from abc import ABC, abstractmethod
from ipaddress import IPv4Address, IPv6Address
from typing import Optional

from pingstat.schemas import PingOutcome

DEFAULT_TIMEOUT = 2.0


class Pinger(ABC):
    """One identifier's worth of echo exchanges towards a single target."""

    @abstractmethod
    async def ping(self, sequence: int) -> PingOutcome:
        """Send one echo request with this sequence id and wait for its reply or timeout.

        Network failures are reported through the outcome status, never raised.
        """
        raise NotImplementedError


class Client(ABC):
    """A bound socket shared by every target with the same ClientKey."""

    @abstractmethod
    def pinger(self, target: IPv4Address | IPv6Address, ident: int,
               timeout: Optional[float] = None) -> Pinger:
        raise NotImplementedError


def failure(target, ident: int, sequence: int, status: str, detail: str = "") -> PingOutcome:
    return {
        "target": str(target),
        "ident": ident,
        "sequence": sequence,
        "status": status,
        "rtt": None,
        "detail": detail,
    }
