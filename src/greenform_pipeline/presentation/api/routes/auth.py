from __future__ import annotations
from fastapi import APIRouter, HTTPException, Request

from greenform_pipeline.domain.errors import AuthError, AuthErrorReason

router = APIRouter(prefix="/v1/auth", tags=["auth"])


def auth_error_status(e: AuthError) -> int:
    return 401 if e.reason is AuthErrorReason.INVALID_CREDENTIALS else 502


@router.get("/token")
async def token_status(request: Request) -> dict[str, str | None]:  # type: ignore[misc]
    status = request.app.state.container.tokens.status()
    return {
        "status": status.state.value,
        "expires_at": status.expires_at.isoformat() if status.expires_at else None,
    }


@router.post("/login")
async def login(request: Request, force: bool = False) -> dict[str, str | None]:  # type: ignore[misc]
    tokens = request.app.state.container.tokens
    try:
        token = await tokens.login(force=force)
    except AuthError as e:
        raise HTTPException(status_code=auth_error_status(e), detail={"reason": e.reason.value, "message": e.message})
    return {"status": "VALID", "expires_at": token.expires_at.isoformat()}


@router.delete("/token")
async def clear_token(request: Request) -> dict[str, str]:  # type: ignore[misc]
    request.app.state.container.tokens.clear()
    return {"status": "NO_TOKEN"}
