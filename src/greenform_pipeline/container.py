from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from greenform_pipeline.application.ports.progress_port import ProgressPort
from greenform_pipeline.application.use_cases.fetch_orders import FetchOrchestrator
from greenform_pipeline.application.use_cases.token_lifecycle import TokenLifecycleManager
from greenform_pipeline.config import Settings
from greenform_pipeline.infrastructure.adapters.boms.auth_gateway import BomsAuthGateway
from greenform_pipeline.infrastructure.adapters.boms.order_gateway import BomsOrderGateway
from greenform_pipeline.infrastructure.adapters.http.httpx_client import HttpxClient
from greenform_pipeline.infrastructure.adapters.progress_adapter import LoggingProgressAdapter
from greenform_pipeline.infrastructure.adapters.token_store.sqlite_store import SQLiteTokenStore


@dataclass
class Container:
    settings: Settings
    http: HttpxClient
    tokens: TokenLifecycleManager
    orchestrator: FetchOrchestrator

    async def aclose(self) -> None:
        await self.http.aclose()


def build_container(settings: Settings, *, progress: ProgressPort | None = None) -> Container:
    # One HttpxClient shared by login and lookups
    http = HttpxClient(timeout=settings.http_timeout, retries=settings.http_retries)
    buffer = timedelta(minutes=settings.token_refresh_buffer_minutes)

    store = SQLiteTokenStore(db_path=settings.token_store_path, buffer=buffer)
    tokens = TokenLifecycleManager(
        store=store,
        gateway=BomsAuthGateway(http, base_url=settings.base_url, login_path=settings.login_path),
        credential=settings.credential(),
        validity=timedelta(hours=settings.token_validity_hours),
        buffer=buffer,
    )
    orchestrator = FetchOrchestrator(
        tokens,
        BomsOrderGateway(http, base_url=settings.base_url),
        progress=progress or LoggingProgressAdapter(),
        max_concurrency=settings.max_concurrency,
        batch_deadline=settings.batch_deadline,
    )
    return Container(settings=settings, http=http, tokens=tokens, orchestrator=orchestrator)
