from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from greenform_pipeline.domain.entities.order_record import OrderRecord

# =========================
# Per-item outcomes
# =========================
class FailureReason(str, Enum):
    AUTH_FAILURE = "auth_failure"
    NOT_FOUND = "not_found"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class Success:
    record: OrderRecord

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Success | Failure


def is_auth_failure(outcome: FetchOutcome) -> bool:
    return isinstance(outcome, Failure) and outcome.reason is FailureReason.AUTH_FAILURE


# =========================
# Batch result
# =========================
@dataclass(frozen=True)
class BulkResult:
    """Ordered outcome of one batch: one (order_id, outcome) pair per parsed identifier."""

    items: tuple[tuple[str, FetchOutcome], ...]
    success_count: int
    failure_count: int
    progress_percent: float

    @classmethod
    def empty(cls) -> "BulkResult":
        return cls(items=(), success_count=0, failure_count=0, progress_percent=0.0)

    @property
    def order_ids(self) -> list[str]:
        return [order_id for order_id, _ in self.items]

    @property
    def records(self) -> list[OrderRecord]:
        return [o.record for _, o in self.items if isinstance(o, Success)]

    @property
    def failed_ids(self) -> list[str]:
        return [order_id for order_id, o in self.items if isinstance(o, Failure)]

    @property
    def auth_failed_ids(self) -> list[str]:
        return [order_id for order_id, o in self.items if is_auth_failure(o)]

    @property
    def all_failed(self) -> bool:
        """Batch-level advisory: every item failed. Items stay individually inspectable."""
        return bool(self.items) and self.success_count == 0

    def outcome_for(self, order_id: str) -> FetchOutcome | None:
        return next((o for oid, o in self.items if oid == order_id), None)
