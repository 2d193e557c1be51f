from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from greenform_pipeline.config import settings
from greenform_pipeline.container import build_container
from greenform_pipeline.infrastructure.adapters.progress_adapter import (
    FanOutProgressAdapter,
    LoggingProgressAdapter,
)
from greenform_pipeline.logging_setup import configure_logging
from greenform_pipeline.presentation.api.metrics import MetricsProgressAdapter, registry
from greenform_pipeline.presentation.api.routes.auth import router as auth_router
from greenform_pipeline.presentation.api.routes.health import router as health_router
from greenform_pipeline.presentation.api.routes.orders import router as orders_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings.log_level)
    # One container per process so every request shares the token and its login lock
    container = build_container(
        settings, progress=FanOutProgressAdapter(LoggingProgressAdapter(), MetricsProgressAdapter())
    )
    app.state.container = container
    try:
        yield
    finally:
        await container.aclose()


app = FastAPI(title="Green Form Pipeline", version="0.1.0", lifespan=lifespan)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(orders_router)


@app.get("/metrics")
def metrics() -> Response:  # type: ignore[misc]
    data = generate_latest(registry)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
