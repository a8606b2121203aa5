"""Validation service - the externally reachable key check."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from keygate.core.exceptions import KeyNotFoundError
from keygate.core.key_models import ValidationOutcome
from keygate.core.logging import get_logger
from keygate.core.ports import KeyStorePort
from keygate.services import key_lifecycle
from keygate.utils.identifiers import get_log_safe_identity, mask_token

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ValidationService:
    """Checks keys presented by clients and records claims and usage."""

    def __init__(self, store: KeyStorePort, clock: Callable[[], datetime] = utcnow) -> None:
        """Initialize the service with a key store and a clock."""
        self._store = store
        self._clock = clock

    def check(self, token: str, claimant_identity: str) -> ValidationOutcome:
        """Validate ``token`` for ``claimant_identity``.

        The decision and any resulting binding or usage decrement are
        committed in a single store operation, so concurrent checks against
        the same key are applied one after another.

        Raises:
            ValueError: If the token or the identity is blank.
            PersistenceError: If the outcome could not be committed.
        """
        if not token or not token.strip():
            raise ValueError("Key token cannot be empty")
        if not claimant_identity or not claimant_identity.strip():
            raise ValueError("Claimant identity cannot be empty")

        try:
            transition = self._store.with_record(
                token,
                lambda record: key_lifecycle.validate(
                    record, claimant_identity, now=self._clock()
                ),
            )
            outcome = transition.outcome
        except KeyNotFoundError:
            outcome = ValidationOutcome.INVALID

        logger.info(
            "key validation",
            extra={
                "event": "key_validation",
                "token": mask_token(token),
                "claimant": get_log_safe_identity(claimant_identity),
                "outcome": outcome.value,
            },
        )
        return outcome


__all__ = ["ValidationService", "utcnow"]
