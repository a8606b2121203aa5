"""Administrative gateway - business logic behind operator commands.

Front ends (HTTP admin routes, the CLI, or a chat bot living elsewhere)
decide whether a caller holds elevated privilege and pass that decision in
as ``is_privileged``. Everything else is enforced here.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Iterable

from keygate.core.config import Settings, config
from keygate.core.exceptions import (
    DuplicateKeyError,
    ForbiddenError,
    KeyNotFoundError,
    PersistenceError,
)
from keygate.core.key_models import KeyRecord, ResetOutcome, RevokeOutcome, Transition
from keygate.core.logging import get_logger
from keygate.core.ports import KeyStorePort
from keygate.services import key_lifecycle
from keygate.services.validation import utcnow
from keygate.utils.identifiers import get_log_safe_identity, mask_token

logger = get_logger(__name__)

MAX_ISSUE_ATTEMPTS = 5


class AdminGateway:  # pylint: disable=too-many-instance-attributes
    """Issue, revoke, list, inspect, and reset access keys."""

    def __init__(
        self,
        store: KeyStorePort,
        *,
        ttl: timedelta,
        usage_quota: int | None,
        cooldown: timedelta,
        token_prefix: str = key_lifecycle.DEFAULT_TOKEN_PREFIX,
        token_length: int = 8,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the gateway.

        Args:
            store: Key store holding every issued record.
            ttl: Default lifetime of newly issued keys.
            usage_quota: Default number of validations per key (None = unlimited).
            cooldown: Minimum time between self-service resets of one key.
            token_prefix: Fixed prefix of generated tokens.
            token_length: Length of the random token suffix.
            clock: Source of the current time.
        """
        self._store = store
        self._ttl = ttl
        self._usage_quota = usage_quota
        self._cooldown = cooldown
        self._token_prefix = token_prefix
        self._token_length = token_length
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: KeyStorePort,
        settings: Settings = config,
        clock: Callable[[], datetime] = utcnow,
    ) -> AdminGateway:
        """Build a gateway using the configured issuance defaults."""
        return cls(
            store,
            ttl=timedelta(seconds=settings.KEY_TTL_SECONDS),
            usage_quota=settings.KEY_USAGE_QUOTA,
            cooldown=timedelta(seconds=settings.RESET_COOLDOWN_SECONDS),
            token_prefix=settings.KEY_PREFIX,
            token_length=settings.KEY_SUFFIX_LENGTH,
            clock=clock,
        )

    @property
    def cooldown(self) -> timedelta:
        """Return the self-service reset cooldown."""
        return self._cooldown

    @staticmethod
    def _authorize(is_privileged: bool, action: str) -> None:
        if not is_privileged:
            logger.warning("forbidden admin action", extra={"action": action})
            raise ForbiddenError(f"{action} requires elevated privilege")

    def issue_key(
        self,
        *,
        is_privileged: bool,
        ttl: timedelta | None = None,
        usage_quota: int | None = None,
        unlimited: bool = False,
    ) -> KeyRecord:
        """Issue and store a new unbound key.

        Args:
            is_privileged: Whether the caller passed the privilege check.
            ttl: Lifetime override; defaults to the configured ttl.
            usage_quota: Quota override; defaults to the configured quota.
            unlimited: Issue an unlimited-use key regardless of defaults.

        Raises:
            ForbiddenError: If the caller is not privileged.
            ValueError: If ttl or quota are out of range.
            PersistenceError: If the key could not be stored.
        """
        self._authorize(is_privileged, "issue")
        quota = usage_quota if usage_quota is not None else self._usage_quota
        if unlimited:
            quota = None
        lifetime = ttl if ttl is not None else self._ttl

        for _ in range(MAX_ISSUE_ATTEMPTS):
            record = key_lifecycle.issue(
                lifetime,
                quota,
                now=self._clock(),
                prefix=self._token_prefix,
                length=self._token_length,
            )
            try:
                self._store.insert(record)
            except DuplicateKeyError:
                logger.warning("generated token collided, regenerating")
                continue
            logger.info(
                "key issued",
                extra={
                    "event": "key_issued",
                    "token": mask_token(record.token),
                    "expires_at": record.expires_at.isoformat(),
                    "usage_quota": quota,
                },
            )
            return record
        raise PersistenceError("Could not generate a unique key token")

    def revoke_key(self, token: str, *, is_privileged: bool) -> RevokeOutcome:
        """Delete ``token`` from the store.

        Raises:
            ForbiddenError: If the caller is not privileged.
        """
        self._authorize(is_privileged, "revoke")
        outcome = key_lifecycle.revoke(self._store.remove(token))
        logger.info(
            "key revoke",
            extra={"event": "key_revoke", "token": mask_token(token), "outcome": outcome.value},
        )
        return outcome

    def list_keys(self, *, is_privileged: bool) -> list[KeyRecord]:
        """Return every stored key, including expired and exhausted ones.

        Raises:
            ForbiddenError: If the caller is not privileged.
        """
        self._authorize(is_privileged, "list")
        return key_lifecycle.list_records(self._store.snapshot())

    def get_key(self, token: str, *, is_privileged: bool) -> KeyRecord | None:
        """Return the record for ``token`` or ``None`` if it does not exist."""
        self._authorize(is_privileged, "inspect")
        return self._store.load().get(token)

    def import_keys(self, records: Iterable[KeyRecord], *, is_privileged: bool) -> tuple[int, int]:
        """Store pre-existing records, skipping tokens already present.

        Returns:
            A ``(imported, skipped)`` pair of counts.

        Raises:
            ForbiddenError: If the caller is not privileged.
        """
        self._authorize(is_privileged, "import")
        imported = skipped = 0
        for record in records:
            try:
                self._store.insert(record)
            except DuplicateKeyError:
                skipped += 1
                continue
            imported += 1
        logger.info(
            "keys imported",
            extra={"event": "keys_imported", "imported": imported, "skipped": skipped},
        )
        return imported, skipped

    def reset_key(
        self, token: str, requesting_principal: str, *, is_privileged: bool
    ) -> Transition[ResetOutcome]:
        """Clear the binding of ``token``.

        Open to non-privileged callers, subject to the ownership and
        cooldown rules. A ``COOLDOWN_ACTIVE`` result carries ``retry_after``.

        Raises:
            ValueError: If ``requesting_principal`` is blank.
            PersistenceError: If the reset could not be committed.
        """
        if not requesting_principal or not requesting_principal.strip():
            raise ValueError("Requesting principal cannot be empty")

        try:
            transition = self._store.with_record(
                token,
                lambda record: key_lifecycle.reset_binding(
                    record,
                    requesting_principal,
                    self._cooldown,
                    is_privileged,
                    now=self._clock(),
                ),
            )
        except KeyNotFoundError:
            transition = Transition(ResetOutcome.NOT_FOUND)

        logger.info(
            "key reset",
            extra={
                "event": "key_reset",
                "token": mask_token(token),
                "principal": get_log_safe_identity(requesting_principal),
                "privileged": is_privileged,
                "outcome": transition.outcome.value,
            },
        )
        return transition


__all__ = ["AdminGateway", "MAX_ISSUE_ATTEMPTS"]
