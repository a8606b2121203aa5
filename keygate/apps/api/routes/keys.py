"""Self-service key routes for bound holders."""

from __future__ import annotations

import math
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from keygate.apps.api.dependencies import get_admin_gateway, resolve_admin_privilege
from keygate.core.exceptions import PersistenceError
from keygate.core.key_models import ResetOutcome
from keygate.services.admin_gateway import AdminGateway

router = APIRouter(prefix="/keys")

_RESET_STATUS = {
    ResetOutcome.RESET: status.HTTP_200_OK,
    ResetOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ResetOutcome.OWNERSHIP_MISMATCH: status.HTTP_403_FORBIDDEN,
    ResetOutcome.COOLDOWN_ACTIVE: status.HTTP_429_TOO_MANY_REQUESTS,
}


class ResetKeyRequest(BaseModel):
    """Request model for clearing a key's binding."""

    principal: str = Field(..., min_length=1, description="Identity of the requester")


@router.post("/{token}/reset")
def reset_key(
    token: str,
    request: ResetKeyRequest,
    gateway: Annotated[AdminGateway, Depends(get_admin_gateway)],
    is_privileged: Annotated[bool, Depends(resolve_admin_privilege)],
) -> JSONResponse:
    """Clear the binding of ``token`` so it can be claimed by a new identity.

    Callers presenting the admin token bypass the ownership and cooldown
    checks; everyone else is limited to one reset per cooldown window.
    """
    try:
        transition = gateway.reset_key(token, request.principal, is_privileged=is_privileged)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": exc.code, "message": str(exc)},
        ) from exc

    content: dict[str, object] = {"status": transition.outcome.value, "token": token}
    headers: dict[str, str] = {}
    if transition.retry_after is not None:
        retry_seconds = math.ceil(transition.retry_after.total_seconds())
        content["retry_after_seconds"] = retry_seconds
        headers["Retry-After"] = str(retry_seconds)

    return JSONResponse(
        status_code=_RESET_STATUS[transition.outcome],
        content=content,
        headers=headers or None,
    )


__all__ = ["router"]
