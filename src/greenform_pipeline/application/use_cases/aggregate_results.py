from __future__ import annotations

from collections.abc import Mapping, Sequence

from greenform_pipeline.domain.model import BulkResult, FetchOutcome, Success


class ResultAggregator:
    """Merges first-pass and retry-pass outcomes into a BulkResult. No I/O."""

    def merge(
        self,
        order_ids: Sequence[str],
        first_pass: Sequence[FetchOutcome],
        retries: Mapping[int, FetchOutcome] | None = None,
    ) -> BulkResult:
        """Replaces first-pass outcomes with retry outcomes by position.

        Retries are keyed by index into order_ids so a retried outcome can only
        land in the slot it was issued for.
        """
        if len(first_pass) != len(order_ids):
            raise ValueError(
                f"Expected {len(order_ids)} first-pass outcomes, got {len(first_pass)}"
            )
        outcomes = list(first_pass)
        for index, outcome in (retries or {}).items():
            if not 0 <= index < len(outcomes):
                raise IndexError(f"Retry index {index} outside batch of {len(outcomes)}")
            outcomes[index] = outcome

        successes = sum(1 for o in outcomes if isinstance(o, Success))
        return BulkResult(
            items=tuple(zip(order_ids, outcomes)),
            success_count=successes,
            failure_count=len(outcomes) - successes,
            progress_percent=100.0 if outcomes else 0.0,
        )

    def summarize(self, result: BulkResult) -> list[str]:
        """User-facing summary lines for a finished batch."""
        total = len(result.items)
        lines: list[str] = []
        if result.success_count:
            lines.append(f"Successfully loaded {result.success_count} of {total} orders")
        if result.failure_count:
            lines.append(
                f"Failed to load {result.failure_count} orders: {', '.join(result.failed_ids)}"
            )
            if result.auth_failed_ids:
                lines.append("Authentication failed. Please check your credentials and try again.")
        if result.all_failed:
            lines.append("No valid data found for any of the provided Order IDs")
        return lines
