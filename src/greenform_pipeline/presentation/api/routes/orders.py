from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from greenform_pipeline.application.use_cases.aggregate_results import ResultAggregator
from greenform_pipeline.config import settings
from greenform_pipeline.domain.errors import AuthError, ValidationError
from greenform_pipeline.domain.model import BulkResult, Success
from greenform_pipeline.presentation.api.routes.auth import auth_error_status
from greenform_pipeline.presentation.assets import resolve_asset_url

router = APIRouter(prefix="/v1/orders", tags=["orders"])

_aggregator = ResultAggregator()


def serialize_result(result: BulkResult) -> dict[str, Any]:
    items: list[dict[str, Any]] = []
    for order_id, outcome in result.items:
        if isinstance(outcome, Success):
            record = asdict(outcome.record)
            record["urls"] = {
                label: resolve_asset_url(path, base_url=settings.resolved_asset_base_url, key=settings.asset_key)
                for label, path in outcome.record.document_paths().items()
            }
            items.append({"order_id": order_id, "status": "success", "record": record})
        else:
            items.append(
                {
                    "order_id": order_id,
                    "status": "failure",
                    "reason": outcome.reason.value,
                    "message": outcome.message,
                }
            )
    return {
        "items": items,
        "success_count": result.success_count,
        "failure_count": result.failure_count,
        "progress_percent": result.progress_percent,
        "all_failed": result.all_failed,
        "messages": _aggregator.summarize(result),
    }


@router.post("/fetch")
async def fetch_orders(request: Request, body: dict[str, Any]) -> dict[str, Any]:  # type: ignore[misc]
    orchestrator = request.app.state.container.orchestrator
    try:
        result = await orchestrator.fetch_many(str(body.get("order_ids", "")))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"reason": "validation_error", "message": str(e)})
    except AuthError as e:
        raise HTTPException(status_code=auth_error_status(e), detail={"reason": e.reason.value, "message": e.message})
    return serialize_result(result)
