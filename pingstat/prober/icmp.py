# pingstat/prober/icmp.py
import asyncio
import logging
import socket
import time
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Optional

from icmplib import (
    AsyncSocket,
    DestinationUnreachable,
    ICMPLibError,
    ICMPReply,
    ICMPRequest,
    ICMPv4Socket,
    ICMPv6Socket,
    TimeExceeded,
)

from pingstat.prober.base import DEFAULT_TIMEOUT, Client, Pinger, failure
from pingstat.schemas import ClientKey, PingOutcome

logger = logging.getLogger(__name__)

DEFAULT_TTL = 64
READ_SIZE = 1024
READ_ERROR_PAUSE = 0.1

# ICMP type per address family (4 / 6)
ECHO_REQUEST = {4: 8, 6: 128}
ECHO_REPLY = {4: 0, 6: 129}


def _is_address(value: str) -> bool:
    try:
        ip_address(value)
    except ValueError:
        return False
    return True


def _normalize(address: str) -> str:
    # link-local v6 sources come back with a %scope suffix
    return str(ip_address(address.split("%", 1)[0]))


class IcmpClient(Client):
    """
    One ICMP socket shared by many targets, built on icmplib.

    Every exchange registers a waiter under (identifier, sequence) and the
    destination it was sent to. A single reader task receives from the
    socket, decodes with icmplib and hands each reply to its waiter:

    * an echo reply goes to the waiter whose destination is the reply source;
    * an ICMP error (unreachable, time exceeded) comes from some router on
      the path, so it goes to the waiter with that (identifier, sequence)
      only when exactly one is outstanding.

    Anything else is dropped.
    """

    def __init__(self, key: ClientKey, sock: Optional[AsyncSocket] = None):
        self.key = key
        self.ttl = key.ttl or DEFAULT_TTL
        self._sock = sock if sock is not None else AsyncSocket(self._open(key))
        self._reader: Optional[asyncio.Task] = None
        self._waiters: dict[tuple[int, int], dict[str, asyncio.Future]] = {}

    @staticmethod
    def _open(key: ClientKey):
        sock_cls = ICMPv6Socket if key.ipv6 else ICMPv4Socket
        source = key.interface if key.interface and _is_address(key.interface) else None
        icmp = sock_cls(address=source, privileged=key.sock_type == "raw")
        if key.interface and source is None:
            try:
                icmp.sock.setsockopt(socket.SOL_SOCKET, socket.SO_BINDTODEVICE,
                                     key.interface.encode())
            except OSError:
                icmp.close()
                raise
        return icmp

    def pinger(self, target: IPv4Address | IPv6Address, ident: int,
               timeout: Optional[float] = None) -> Pinger:
        return IcmpPinger(self, target, ident, timeout)

    def close(self) -> None:
        if self._reader is not None:
            self._reader.cancel()
        self._sock.close()

    def _ensure_reader(self) -> None:
        if self._reader is None or self._reader.done():
            self._reader = asyncio.get_running_loop().create_task(self._read_replies())
            self._reader.add_done_callback(self._reader_done)

    def _reader_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.error("reply reader on %s stopped: %r", self.key, err, exc_info=err)

    async def _read_replies(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                packet, address = await loop.sock_recvfrom(self._sock.sock, READ_SIZE)
            except OSError as err:
                logger.warning("receive failed on %s: %s", self.key, err)
                await asyncio.sleep(READ_ERROR_PAUSE)
                continue
            reply = self._sock._parse_reply(packet=packet, source=address[0],
                                            current_time=time.time())
            if reply is None or reply.type == ECHO_REQUEST.get(reply.family):
                continue
            self._deliver(reply)

    def _deliver(self, reply: ICMPReply) -> None:
        key = (reply.id, reply.sequence)
        candidates = self._waiters.get(key, {})
        waiter = None
        if reply.type == ECHO_REPLY.get(reply.family):
            waiter = candidates.get(_normalize(reply.source))
        elif len(candidates) == 1:
            waiter = next(iter(candidates.values()))
        if waiter is None or waiter.done():
            logger.debug("dropping unmatched reply type=%d from %s id=%d seq=%d",
                         reply.type, reply.source, reply.id, reply.sequence)
            return
        waiter.set_result(reply)

    async def exchange(self, request: ICMPRequest, timeout: float) -> ICMPReply:
        """Send request and wait for the matching reply; raises TimeoutError on expiry."""
        self._ensure_reader()
        # send() assigns the final identifier on unprivileged Linux sockets
        self._sock.send(request)
        key = (request.id, request.sequence)
        destination = _normalize(request.destination)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(key, {})[destination] = waiter
        try:
            return await asyncio.wait_for(waiter, timeout)
        finally:
            candidates = self._waiters.get(key)
            if candidates is not None and candidates.get(destination) is waiter:
                del candidates[destination]
                if not candidates:
                    del self._waiters[key]


class IcmpPinger(Pinger):
    def __init__(self, client: IcmpClient, target: IPv4Address | IPv6Address, ident: int,
                 timeout: Optional[float] = None):
        self.client = client
        self.target = target
        self.ident = ident
        self.timeout = timeout if timeout is not None else DEFAULT_TIMEOUT

    async def ping(self, sequence: int) -> PingOutcome:
        request = ICMPRequest(
            destination=str(self.target),
            id=self.ident,
            sequence=sequence,
            ttl=self.client.ttl,
        )
        try:
            reply = await self.client.exchange(request, self.timeout)
            reply.raise_for_status()
        except asyncio.TimeoutError:
            return failure(self.target, self.ident, sequence, "timeout",
                           f"no reply within {self.timeout}s")
        except DestinationUnreachable as err:
            return failure(self.target, self.ident, sequence, "unreach", str(err))
        except TimeExceeded as err:
            return failure(self.target, self.ident, sequence, "ttl_exceeded", str(err))
        except ICMPLibError as err:
            return failure(self.target, self.ident, sequence, "error", str(err))

        return {
            "target": str(self.target),
            "ident": self.ident,
            "sequence": sequence,
            "status": "echo_reply",
            "rtt": max(0.0, reply.time - request.time),
            "detail": "",
        }
