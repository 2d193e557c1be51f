from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger

from greenform_pipeline.application.ports.order_gateway_port import OrderGatewayPort
from greenform_pipeline.application.ports.progress_port import ProgressPort
from greenform_pipeline.application.use_cases.aggregate_results import ResultAggregator
from greenform_pipeline.application.use_cases.parse_order_ids import parse_order_ids
from greenform_pipeline.application.use_cases.token_lifecycle import TokenLifecycleManager
from greenform_pipeline.domain.entities.token import Token
from greenform_pipeline.domain.errors import AuthError
from greenform_pipeline.domain.model import (
    BulkResult,
    Failure,
    FailureReason,
    FetchOutcome,
    is_auth_failure,
)

DEADLINE_MESSAGE = "Batch deadline exceeded"


class _NullProgress:
    def notify(self, event: str, payload: dict[str, Any]) -> None:
        return None


class _ProgressTracker:
    """Emits progress = completed / total * 100 after each first-pass completion."""

    def __init__(self, total: int, progress: ProgressPort) -> None:
        self.total = total
        self.completed = 0
        self.progress = progress

    def first_pass_done(self) -> None:
        self.completed += 1
        self.progress.notify(
            "progress",
            {
                "percent": self.completed / self.total * 100,
                "completed": self.completed,
                "total": self.total,
                "phase": "first_pass",
            },
        )


class FetchOrchestrator:
    """Fans out one lookup per order identifier and recovers from token expiry.

    Flow: parse → valid token → concurrent first pass → barrier → one forced
    login and a retry pass limited to AUTH_FAILURE items → merge.
    """

    def __init__(
        self,
        tokens: TokenLifecycleManager,
        gateway: OrderGatewayPort,
        *,
        progress: ProgressPort | None = None,
        aggregator: ResultAggregator | None = None,
        max_concurrency: int = 10,
        batch_deadline: float | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.tokens = tokens
        self.gateway = gateway
        self.progress: ProgressPort = progress or _NullProgress()
        self.aggregator = aggregator or ResultAggregator()
        self.max_concurrency = max_concurrency
        self.batch_deadline = batch_deadline
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def _log(self, msg: str) -> None:
        logger.info(f"[FetchOrchestrator] {msg}")

    async def fetch_many(self, raw_input: str) -> BulkResult:
        """Fetches green form records for every identifier in raw_input.

        Raises:
            ValidationError: no identifiers after parsing; nothing is sent.
            AuthError: no valid token could be obtained; nothing is sent.
        """
        order_ids = parse_order_ids(raw_input)
        token = await self.tokens.get_valid_token()

        loop = asyncio.get_running_loop()
        deadline_at = loop.time() + self.batch_deadline if self.batch_deadline else None
        tracker = _ProgressTracker(len(order_ids), self.progress)
        self._log(f"Fetching {len(order_ids)} orders")

        indices = list(range(len(order_ids)))
        first_pass = await self._fan_out(
            order_ids, indices, token, deadline_at, on_done=tracker.first_pass_done
        )

        auth_failed = [i for i, outcome in enumerate(first_pass) if is_auth_failure(outcome)]
        retries: dict[int, FetchOutcome] = {}
        if auth_failed:
            retries = await self._retry_pass(order_ids, auth_failed, token, deadline_at)

        result = self.aggregator.merge(order_ids, first_pass, retries)
        self._report(result, retried=len(auth_failed))
        return result

    async def _retry_pass(
        self,
        order_ids: Sequence[str],
        indices: list[int],
        stale: Token,
        deadline_at: float | None,
    ) -> dict[int, FetchOutcome]:
        self._log(f"{len(indices)} orders rejected the token, forcing a fresh login")
        try:
            fresh = await self.tokens.login(force=True, replacing=stale)
        except AuthError as e:
            logger.error(f"[FetchOrchestrator] Forced login failed, auth failures are final: {e}")
            return {}

        done = 0

        def retry_done() -> None:
            nonlocal done
            done += 1
            self.progress.notify(
                "retry_progress", {"completed": done, "total": len(indices), "phase": "retry"}
            )

        outcomes = await self._fan_out(order_ids, indices, fresh, deadline_at, on_done=retry_done)
        return dict(zip(indices, outcomes))

    async def _fan_out(
        self,
        order_ids: Sequence[str],
        indices: Sequence[int],
        token: Token,
        deadline_at: float | None,
        *,
        on_done: Callable[[], None],
    ) -> list[FetchOutcome]:
        """Runs one bounded lookup per index and waits for all of them to settle."""

        async def run(index: int) -> FetchOutcome:
            async with self._semaphore:
                outcome = await self._fetch_isolated(order_ids[index], token)
            try:
                on_done()
            except Exception:
                logger.exception("[FetchOrchestrator] Progress listener failed")
            return outcome

        tasks = [asyncio.create_task(run(i)) for i in indices]
        if deadline_at is None:
            return list(await asyncio.gather(*tasks))

        remaining = max(deadline_at - asyncio.get_running_loop().time(), 0.0)
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=remaining)
        else:
            pending = set()
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                f"[FetchOrchestrator] Batch deadline hit, {len(pending)} lookups cancelled"
            )
            await asyncio.gather(*pending, return_exceptions=True)
        return [
            Failure(FailureReason.NETWORK_ERROR, DEADLINE_MESSAGE) if task.cancelled() else task.result()
            for task in tasks
        ]

    async def _fetch_isolated(self, order_id: str, token: Token) -> FetchOutcome:
        try:
            return await self.gateway.fetch_one(order_id, token)
        except Exception as e:
            logger.exception(f"[FetchOrchestrator] Unexpected error fetching {order_id}")
            return Failure(FailureReason.NETWORK_ERROR, str(e) or type(e).__name__)

    def _report(self, result: BulkResult, *, retried: int) -> None:
        reasons = Counter(o.reason.value for _, o in result.items if isinstance(o, Failure))
        self._log(
            f"Batch finished: {result.success_count} ok, {result.failure_count} failed, "
            f"{retried} retried"
        )
        if result.all_failed:
            logger.warning("[FetchOrchestrator] No order in the batch could be loaded")
        self.progress.notify(
            "batch_finished",
            {
                "total": len(result.items),
                "success": result.success_count,
                "failure": result.failure_count,
                "retried": retried,
                "reasons": dict(reasons),
                "all_failed": result.all_failed,
            },
        )
        self.progress.notify("progress", {"percent": 0.0, "completed": 0, "total": 0, "phase": "idle"})
