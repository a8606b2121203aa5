"""Administrative routes for access key management."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from keygate.apps.api.dependencies import get_admin_gateway, resolve_admin_privilege
from keygate.core.exceptions import ForbiddenError, PersistenceError
from keygate.core.key_models import KeyRecord, RevokeOutcome
from keygate.services.admin_gateway import AdminGateway

router = APIRouter(prefix="/admin/keys")

GatewayDependency = Annotated[AdminGateway, Depends(get_admin_gateway)]
PrivilegeDependency = Annotated[bool, Depends(resolve_admin_privilege)]


class IssueKeyRequest(BaseModel):
    """Request model for issuing a new key."""

    ttl_seconds: int | None = Field(
        default=None, ge=1, description="Lifetime in seconds (null = configured default)"
    )
    usage_quota: int | None = Field(
        default=None, ge=1, description="Allowed validations (null = configured default)"
    )
    unlimited: bool = Field(default=False, description="Issue an unlimited-use key")


class KeyInfo(BaseModel):
    """Key information for operators (never includes the bound identity)."""

    token: str
    created_at: datetime
    expires_at: datetime
    usage_remaining: int | None
    unlimited: bool
    bound: bool
    owning_principal: str | None
    last_reset_at: datetime | None
    status: str


class ListKeysResponse(BaseModel):
    """Response for listing keys."""

    keys: list[KeyInfo]
    total: int


def _record_to_info(record: KeyRecord, now: datetime) -> KeyInfo:
    """Convert a domain KeyRecord to a KeyInfo response model."""
    return KeyInfo(
        token=record.token,
        created_at=record.created_at,
        expires_at=record.expires_at,
        usage_remaining=record.usage_remaining,
        unlimited=record.is_unlimited,
        bound=record.bound_identity is not None,
        owning_principal=record.owning_principal,
        last_reset_at=record.last_reset_at,
        status=record.status(now).value,
    )


def _forbidden(exc: ForbiddenError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"status": exc.code, "message": str(exc)},
    )


def _unavailable(exc: PersistenceError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"status": exc.code, "message": str(exc)},
    )


@router.post("", response_model=KeyInfo, status_code=status.HTTP_201_CREATED)
def issue_key(
    request: IssueKeyRequest,
    gateway: GatewayDependency,
    is_privileged: PrivilegeDependency,
) -> KeyInfo:
    """Issue a new unbound key."""
    ttl = timedelta(seconds=request.ttl_seconds) if request.ttl_seconds else None
    try:
        record = gateway.issue_key(
            is_privileged=is_privileged,
            ttl=ttl,
            usage_quota=request.usage_quota,
            unlimited=request.unlimited,
        )
    except ForbiddenError as exc:
        raise _forbidden(exc) from exc
    except PersistenceError as exc:
        raise _unavailable(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return _record_to_info(record, datetime.now(timezone.utc))


@router.get("", response_model=ListKeysResponse)
def list_keys(
    gateway: GatewayDependency,
    is_privileged: PrivilegeDependency,
) -> ListKeysResponse:
    """List every key, including expired and exhausted ones."""
    try:
        records = gateway.list_keys(is_privileged=is_privileged)
    except ForbiddenError as exc:
        raise _forbidden(exc) from exc
    except PersistenceError as exc:
        raise _unavailable(exc) from exc

    now = datetime.now(timezone.utc)
    return ListKeysResponse(
        keys=[_record_to_info(record, now) for record in records],
        total=len(records),
    )


@router.get("/{token}", response_model=KeyInfo)
def get_key(
    token: str,
    gateway: GatewayDependency,
    is_privileged: PrivilegeDependency,
) -> KeyInfo:
    """Get details for a specific key."""
    try:
        record = gateway.get_key(token, is_privileged=is_privileged)
    except ForbiddenError as exc:
        raise _forbidden(exc) from exc
    except PersistenceError as exc:
        raise _unavailable(exc) from exc

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "not_found", "message": f"Key not found: {token}"},
        )
    return _record_to_info(record, datetime.now(timezone.utc))


@router.delete("/{token}")
def revoke_key(
    token: str,
    gateway: GatewayDependency,
    is_privileged: PrivilegeDependency,
) -> JSONResponse:
    """Revoke a key. The record is deleted and cannot be recovered."""
    try:
        outcome = gateway.revoke_key(token, is_privileged=is_privileged)
    except ForbiddenError as exc:
        raise _forbidden(exc) from exc
    except PersistenceError as exc:
        raise _unavailable(exc) from exc

    status_code = (
        status.HTTP_200_OK if outcome is RevokeOutcome.REVOKED else status.HTTP_404_NOT_FOUND
    )
    return JSONResponse(status_code=status_code, content={"status": outcome.value, "token": token})


__all__ = ["router"]
