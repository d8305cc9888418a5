# pingstat/service.py
import asyncio
import logging
from typing import Optional

import uvicorn

from pingstat.api import create_app
from pingstat.core.pool import ClientPool
from pingstat.core.scheduler import ProbeScheduler
from pingstat.core.store import MetricsStore
from pingstat.schemas import TargetSpec

logger = logging.getLogger(__name__)


def build_schedulers(targets: list[TargetSpec], pool: ClientPool,
                     store: MetricsStore) -> list[ProbeScheduler]:
    """One scheduler per target; raises ClientCreationError if a client cannot be built."""
    return [ProbeScheduler(spec, pool.acquire(spec.client_key), store) for spec in targets]


async def serve(listen: tuple[str, int], targets: list[TargetSpec],
                pool: Optional[ClientPool] = None, store: Optional[MetricsStore] = None) -> None:
    if pool is None:
        pool = ClientPool()
    if store is None:
        store = MetricsStore()

    schedulers = build_schedulers(targets, pool, store)
    logger.info("%d targets sharing %d ping clients", len(schedulers), len(pool))
    tasks = [asyncio.create_task(s.run(), name=f"probe {s.spec.target}") for s in schedulers]

    host, port = listen
    # log_config=None keeps uvicorn on the logging setup done by the cli
    server = uvicorn.Server(uvicorn.Config(create_app(store), host=host, port=port, log_config=None))
    try:
        await server.serve()
    finally:
        for t in tasks:
            t.cancel()
