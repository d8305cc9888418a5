# pingstat/schemas.py
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address
from typing import Literal, Optional, TypedDict

ReplyType = Literal["echo_reply", "timeout", "unreach", "ttl_exceeded", "error"]
SockType = Literal["dgram", "raw"]

SOCK_TYPES: tuple[str, ...] = ("dgram", "raw")

# (target ip, namespace label); the label is "" for the default namespace
MetricsKey = tuple[str, str]


class PingOutcome(TypedDict, total=False):
    target: str
    ident: int
    sequence: int
    status: ReplyType
    rtt: Optional[float]        # seconds, only set for echo_reply
    detail: str


@dataclass(frozen=True)
class ClientKey:
    """Network setup shared by every target that can use the same socket."""
    interface: str | None
    netns: str | None
    ttl: int | None
    sock_type: SockType
    ipv6: bool


@dataclass(frozen=True)
class TargetSpec:
    target: IPv4Address | IPv6Address
    interface: str | None = None
    ttl: int | None = None
    timeout: float | None = None
    interval: float | None = None
    netns: str | None = None
    sock_type: SockType = "dgram"

    @property
    def client_key(self) -> ClientKey:
        return ClientKey(
            interface=self.interface,
            netns=self.netns,
            ttl=self.ttl,
            sock_type=self.sock_type,
            ipv6=self.target.version == 6,
        )

    @property
    def metrics_key(self) -> MetricsKey:
        return (str(self.target), self.netns or "")
