from typing import Any

from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()

BATCHES = Counter(
    "greenform_batches_total", "Order batches processed", ["all_failed"], registry=registry
)
ORDER_OUTCOMES = Counter(
    "greenform_order_outcomes_total", "Final per-order outcomes", ["outcome"], registry=registry
)
AUTH_RETRIES = Counter(
    "greenform_auth_retries_total", "Orders re-fetched after a token rejection", registry=registry
)


class MetricsProgressAdapter:
    """Feeds batch_finished events into the prometheus counters."""

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        if event != "batch_finished":
            return
        BATCHES.labels(all_failed=str(payload["all_failed"]).lower()).inc()
        if payload["success"]:
            ORDER_OUTCOMES.labels(outcome="success").inc(payload["success"])
        for reason, count in payload["reasons"].items():
            ORDER_OUTCOMES.labels(outcome=reason).inc(count)
        if payload["retried"]:
            AUTH_RETRIES.inc(payload["retried"])
