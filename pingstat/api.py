# pingstat/api.py
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from pingstat.core.store import MetricsStore
from pingstat.render import CONTENT_TYPE, render


def create_app(store: MetricsStore) -> FastAPI:
    """Read-only HTTP surface: GET /metrics renders the current snapshot."""
    app = FastAPI(title="pingstat", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics() -> PlainTextResponse:
        return PlainTextResponse(render(store.snapshot()), media_type=CONTENT_TYPE)

    return app
