"""Video Analyzer entry point."""

from __future__ import annotations

import logging
import os

import certifi
import httpx
import uvicorn

# Fix SSL cert resolution for curl_cffi (used by Scrapling)
os.environ.setdefault("CURL_CA_BUNDLE", certifi.where())
os.environ.setdefault("SSL_CERT_FILE", certifi.where())

from adapters.resolver import FallbackResolver  # noqa: E402
from api.app import create_app  # noqa: E402
from api.routers.analysis import set_resolver  # noqa: E402
from config.settings import settings  # noqa: E402
from core.models import Credentials  # noqa: E402
from core.report import authentication_status  # noqa: E402

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger(__name__)

app = create_app()


@app.on_event("startup")
async def on_startup() -> None:
    credentials = Credentials.from_settings(settings)
    log.info("Provider credentials: %s", authentication_status(credentials))

    client = httpx.AsyncClient(
        headers={"User-Agent": settings.USER_AGENT},
        follow_redirects=True,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    app.state.http_client = client
    resolver = FallbackResolver(
        client,
        credentials,
        settings,
        broadcast_fn=app.state.broadcaster.broadcast,
    )
    app.state.resolver = resolver
    set_resolver(resolver)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if hasattr(app.state, "http_client"):
        await app.state.http_client.aclose()
        log.info("HTTP client closed.")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.DASHBOARD_PORT,
        reload=False,
    )
