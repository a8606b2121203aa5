"""Key lifecycle state transitions.

Pure functions over ``KeyRecord`` values: nothing here touches storage or
reads the clock. Callers pass ``now`` explicitly and commit the returned
``Transition.record`` through a key store.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Iterable

from keygate.core.key_models import (
    MIN_TOKEN_SUFFIX_LENGTH,
    TOKEN_ALPHABET,
    KeyRecord,
    ResetOutcome,
    RevokeOutcome,
    Transition,
    ValidationOutcome,
)

DEFAULT_TOKEN_PREFIX = "RBX-"


def generate_token(
    prefix: str = DEFAULT_TOKEN_PREFIX, length: int = MIN_TOKEN_SUFFIX_LENGTH
) -> str:
    """Return ``prefix`` followed by ``length`` random characters from A-Z0-9."""
    if length < MIN_TOKEN_SUFFIX_LENGTH:
        raise ValueError(f"Token suffix must be at least {MIN_TOKEN_SUFFIX_LENGTH} characters")
    suffix = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
    return f"{prefix}{suffix}"


def issue(
    ttl: timedelta,
    usage_quota: int | None,
    *,
    now: datetime,
    prefix: str = DEFAULT_TOKEN_PREFIX,
    length: int = MIN_TOKEN_SUFFIX_LENGTH,
) -> KeyRecord:
    """Create a fresh, unbound key record.

    Args:
        ttl: Lifetime of the key; ``expires_at = now + ttl``.
        usage_quota: Number of successful validations allowed, or ``None``
            for unlimited use.
        now: Creation timestamp.
        prefix: Fixed token prefix.
        length: Length of the random token suffix.

    Raises:
        ValueError: If ``ttl`` is not positive or ``usage_quota`` is below 1.
    """
    if ttl <= timedelta(0):
        raise ValueError("Key ttl must be positive")
    if usage_quota is not None and usage_quota < 1:
        raise ValueError("Usage quota must be at least 1")
    return KeyRecord(
        token=generate_token(prefix, length),
        created_at=now,
        expires_at=now + ttl,
        usage_remaining=usage_quota,
    )


def validate(
    record: KeyRecord | None, claimant_identity: str, *, now: datetime
) -> Transition[ValidationOutcome]:
    """Decide whether ``claimant_identity`` may use ``record`` at ``now``.

    The first successful claim binds the identity. Bounded keys consume one
    use per successful validation. Rejections never carry a record.
    """
    if record is None:
        return Transition(ValidationOutcome.INVALID)
    if record.is_expired(now):
        return Transition(ValidationOutcome.EXPIRED)
    if record.bound_identity is not None and record.bound_identity != claimant_identity:
        return Transition(ValidationOutcome.IDENTITY_MISMATCH)
    if record.is_exhausted:
        return Transition(ValidationOutcome.EXHAUSTED)

    updates: dict[str, object] = {}
    if record.bound_identity is None:
        updates["bound_identity"] = claimant_identity

    if record.usage_remaining is not None:
        updates["usage_remaining"] = record.usage_remaining - 1

    if not updates:
        return Transition(ValidationOutcome.VALID, record)
    return Transition(ValidationOutcome.VALID, record.model_copy(update=updates))


def revoke(record: KeyRecord | None) -> RevokeOutcome:
    """Return whether revoking ``record`` deletes anything."""
    if record is None:
        return RevokeOutcome.NOT_FOUND
    return RevokeOutcome.REVOKED


def reset_binding(
    record: KeyRecord | None,
    requesting_principal: str,
    cooldown: timedelta,
    is_privileged: bool,
    *,
    now: datetime,
) -> Transition[ResetOutcome]:
    """Clear the binding of ``record`` so another identity can claim it.

    Non-privileged requests must come from the owning principal (if one is
    recorded) and respect ``cooldown`` since the previous reset. Privileged
    requests bypass both checks. The first reset claims ownership for the
    requester when the key has no owner yet.
    """
    if record is None:
        return Transition(ResetOutcome.NOT_FOUND)

    if not is_privileged:
        if (
            record.owning_principal is not None
            and record.owning_principal != requesting_principal
        ):
            return Transition(ResetOutcome.OWNERSHIP_MISMATCH)
        if record.last_reset_at is not None:
            elapsed = now - record.last_reset_at
            if elapsed < cooldown:
                return Transition(ResetOutcome.COOLDOWN_ACTIVE, retry_after=cooldown - elapsed)

    last_reset_at = now
    if record.last_reset_at is not None and record.last_reset_at > now:
        last_reset_at = record.last_reset_at

    updated = record.model_copy(
        update={
            "bound_identity": None,
            "last_reset_at": last_reset_at,
            "owning_principal": record.owning_principal or requesting_principal,
        }
    )
    return Transition(ResetOutcome.RESET, updated)


def list_records(records: Iterable[KeyRecord]) -> list[KeyRecord]:
    """Order records for display: oldest first, ties broken by token."""
    return sorted(records, key=lambda record: (record.created_at, record.token))


__all__ = [
    "DEFAULT_TOKEN_PREFIX",
    "generate_token",
    "issue",
    "list_records",
    "reset_binding",
    "revoke",
    "validate",
]
