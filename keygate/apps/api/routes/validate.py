"""Key validation endpoint polled by client scripts."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from keygate.apps.api.dependencies import get_validation_service
from keygate.core.exceptions import PersistenceError
from keygate.core.key_models import ValidationOutcome
from keygate.core.logging import get_logger
from keygate.services.validation import ValidationService

logger = get_logger(__name__)

router = APIRouter()

MISSING_PARAMETERS = "missing_parameters"


@router.get("/validate")
def validate_key(
    service: Annotated[ValidationService, Depends(get_validation_service)],
    key: str | None = None,
    identity: str | None = None,
    hwid: str | None = None,
) -> JSONResponse:
    """Check ``key`` for a claimant identity.

    The identity is a hardware fingerprint (``hwid``) or an external account
    id (``identity``). Returns 200 with ``{"status": "valid"}`` on success and
    403 with the rejection code otherwise.
    """
    claimant = identity or hwid
    if not key or not key.strip() or not claimant or not claimant.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": MISSING_PARAMETERS},
        )

    try:
        outcome = service.check(key, claimant)
    except PersistenceError as exc:
        logger.error("validation could not be committed", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": exc.code},
        )

    status_code = (
        status.HTTP_200_OK if outcome is ValidationOutcome.VALID else status.HTTP_403_FORBIDDEN
    )
    return JSONResponse(status_code=status_code, content={"status": outcome.value})


__all__ = ["router", "MISSING_PARAMETERS"]
