"""Health and readiness routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from keygate.core.exceptions import PersistenceError
from keygate.core.logging import get_logger
from keygate.services import ServiceContainer

from ..dependencies import get_service_container, require_healthcheck_token

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
def read_root() -> dict[str, str]:
    """Health/info endpoint with a short usage message."""
    return {"message": "Welcome to the API. Refer to /docs for available endpoints."}


@router.get("/alive")
def alive_check(
    _: Annotated[None, Depends(require_healthcheck_token)],
    container: Annotated[ServiceContainer, Depends(get_service_container)],
) -> JSONResponse:
    """Authenticated health check reporting the number of stored keys."""
    try:
        key_count = len(container.store.snapshot())
    except PersistenceError as exc:
        logger.error("key store unavailable during health check", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": exc.code, "message": "Key store is unavailable."},
        )
    return JSONResponse(
        {
            "status": "ok",
            "message": "keygate is alive and healthy.",
            "keys": key_count,
        }
    )


__all__ = ["router"]
