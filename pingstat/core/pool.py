# pingstat/core/pool.py
import logging
import threading
from typing import Callable, Optional

from icmplib import ICMPLibError

from pingstat.prober.base import Client
from pingstat.prober.icmp import IcmpClient
from pingstat.prober.netns import switched_netns
from pingstat.schemas import ClientKey

logger = logging.getLogger(__name__)


class ClientCreationError(RuntimeError):
    def __init__(self, key: ClientKey, err: BaseException):
        super().__init__(f"cannot create ping client for {key}: {err}")
        self.key = key


class ClientPool:
    """
    Lazily creates one Client per distinct ClientKey and hands the same
    instance to every caller with that key. Empty at startup, never evicted.

    Cached lookups take no lock. Misses are created under the pool lock, so a
    key is built exactly once even when many threads miss it together; a
    namespaced key is additionally built inside the process-wide netns window.
    """

    def __init__(self, factory: Optional[Callable[[ClientKey], Client]] = None):
        self.factory = factory or IcmpClient
        self._clients: dict[ClientKey, Client] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def acquire(self, key: ClientKey) -> Client:
        client = self._clients.get(key)
        if client is not None:
            return client
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = self._create(key)
                self._clients[key] = client
        return client

    def _create(self, key: ClientKey) -> Client:
        try:
            with switched_netns(key.netns):
                client = self.factory(key)
        except (OSError, ICMPLibError) as err:
            raise ClientCreationError(key, err) from err
        logger.info("created %s client (interface=%s, netns=%s, ttl=%s, ipv6=%s)",
                    key.sock_type, key.interface, key.netns or "-", key.ttl, key.ipv6)
        return client
