"""
FastAPI application for the EyeM4 exporter.

GET /metrics runs one deadline-guarded collection per request and returns
the exposition-format document as text/plain. This is the only place where
collection failures become HTTP responses: any error (timeout, login
rejected, protocol or connection error) yields HTTP 500 with
``{"message": "<error>"}``.

Server settings and the device client factory live on ``app.state`` so
tests can swap in a fake client without network I/O.

CHANGELOG:
- 2026-10-15: Register health router and record collection outcomes (STORY-010)
- 2026-10-14: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from exporter.src.client import ClientFactory, eyem4_client_factory
from exporter.src.collector import collect_metrics
from exporter.src.config import ExporterSettings
from exporter.src.health import CollectionHealth
from exporter.src.health import router as health_router
from exporter.src.models import CollectionConfig

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """Collect from the dongle and return Prometheus exposition text.

    Returns:
        PlainTextResponse with the metrics document, or a 500 JSONResponse
        carrying the failure message.
    """
    state = request.app.state
    config = CollectionConfig.from_settings(state.settings)

    try:
        document = await collect_metrics(config, state.client_factory)
    except Exception as exc:
        logger.error("Metric collection from %s failed: %s", config.endpoint, exc)
        state.health.record_failure(exc)
        return JSONResponse(status_code=500, content={"message": str(exc)})

    state.health.record_success()
    return PlainTextResponse(document)


def create_app(
    settings: ExporterSettings,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """Build the exporter application.

    Args:
        settings: Validated server settings (``settings.ip`` must be set).
        client_factory: Device client factory; defaults to EyeM4Client
            built from *settings*.

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(
        title="Sungrow EyeM4 Exporter",
        description="Prometheus exporter for the Sungrow EyeM4 dongle.",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.client_factory = client_factory or eyem4_client_factory(settings)
    app.state.health = CollectionHealth()

    app.include_router(health_router)
    app.include_router(router)
    return app
