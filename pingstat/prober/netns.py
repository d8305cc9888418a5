# pingstat/prober/netns.py
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from pyroute2 import netns

logger = logging.getLogger(__name__)

# setns() changes the namespace of the calling thread for everything running on it,
# so at most one switch/restore window may be open in the whole process.
NETNS_LOCK = threading.Lock()


@contextmanager
def switched_netns(name: Optional[str]) -> Iterator[None]:
    """
    Run the body inside network namespace `name`, then restore the previous one.

    A falsy name means the current namespace and takes no lock. Lookup, enter
    and restore failures propagate as OSError; the previous namespace is
    restored on every exit path that got past saving it.
    """
    if not name:
        yield
        return

    with NETNS_LOCK:
        netns.pushns()
        try:
            # flags=0: fail on a missing namespace instead of creating it
            netns.setns(name, flags=0)
            logger.debug("entered netns %s", name)
            yield
        finally:
            netns.popns()
            logger.debug("left netns %s", name)
