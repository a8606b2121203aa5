"""Shared FastAPI dependencies for token checks and service access."""

import hmac
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from keygate.core.config import config
from keygate.services import ServiceContainer
from keygate.services.admin_gateway import AdminGateway
from keygate.services.validation import ValidationService


def _provided_token(authorization: Optional[str], x_admin_token: Optional[str]) -> Optional[str]:
    """Extract a bearer or X-Admin-Token credential from request headers."""
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    if x_admin_token:
        return x_admin_token.strip() or None
    return None


async def _validate_token(
    *,
    expected: Optional[str],
    authorization: Optional[str] = None,
    x_admin_token: Optional[str] = None,
) -> None:
    """Shared helper to validate bearer/X-Admin-Token headers."""
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not configured",
            headers={"WWW-Authenticate": "Bearer"},
        )

    provided = _provided_token(authorization, x_admin_token)
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not hmac.compare_digest(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def resolve_admin_privilege(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
    x_admin_token: Annotated[Optional[str], Header(alias="X-Admin-Token")] = None,
) -> bool:
    """Return True when the request carries the admin token.

    With admin auth disabled every caller is treated as privileged.
    """
    if not config.ENABLE_ADMIN_AUTH:
        return True
    expected = config.ADMIN_API_TOKEN
    provided = _provided_token(authorization, x_admin_token)
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided, expected)


async def require_healthcheck_token(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
    x_admin_token: Annotated[Optional[str], Header(alias="X-Admin-Token")] = None,
) -> None:
    """Token guard specifically for the health check endpoint."""
    if not config.ENABLE_ADMIN_AUTH:
        return
    await _validate_token(
        expected=config.HEALTHCHECK_API_TOKEN,
        authorization=authorization,
        x_admin_token=x_admin_token,
    )


def get_service_container(request: Request) -> ServiceContainer:
    """Resolve the service container attached to the running app."""
    container = getattr(request.app.state, "services", None)
    if not isinstance(container, ServiceContainer):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Service container not configured",
        )
    return container


def get_validation_service(
    container: Annotated[ServiceContainer, Depends(get_service_container)],
) -> ValidationService:
    """Return the validation service bound to the active container."""
    return container.validation


def get_admin_gateway(
    container: Annotated[ServiceContainer, Depends(get_service_container)],
) -> AdminGateway:
    """Return the admin gateway bound to the active container."""
    return container.admin


__all__ = [
    "get_admin_gateway",
    "get_service_container",
    "get_validation_service",
    "require_healthcheck_token",
    "resolve_admin_privilege",
]
