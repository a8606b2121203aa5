"""Core domain models for access key management."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Key format: <prefix><random suffix>, e.g. RBX-7KQ2M9ZD
TOKEN_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MIN_TOKEN_SUFFIX_LENGTH = 8


class ValidationOutcome(str, Enum):
    """Result of presenting a key and a claimant identity for validation."""

    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    IDENTITY_MISMATCH = "identity_mismatch"


class ResetOutcome(str, Enum):
    """Result of asking to clear a key's binding."""

    RESET = "reset"
    NOT_FOUND = "not_found"
    OWNERSHIP_MISMATCH = "ownership_mismatch"
    COOLDOWN_ACTIVE = "cooldown_active"


class RevokeOutcome(str, Enum):
    """Result of revoking a key."""

    REVOKED = "revoked"
    NOT_FOUND = "not_found"


class KeyStatus(str, Enum):
    """Display status derived from a record at a point in time."""

    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    BOUND = "bound"
    UNBOUND = "unbound"


class KeyRecord(BaseModel):
    """Domain model for one issued access key.

    Persisted with camelCase field names. Optional fields are always
    serialized (as ``null`` when unset) so their presence round-trips.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    token: str = Field(..., min_length=1, description="Opaque key presented by clients")
    created_at: datetime = Field(..., description="Creation timestamp")
    expires_at: datetime = Field(..., description="Absolute expiry, fixed at creation")
    usage_remaining: int | None = Field(
        default=None, ge=0, description="Remaining validations (None = unlimited)"
    )
    bound_identity: str | None = Field(
        default=None, description="Claimant identity locked on first validation"
    )
    owning_principal: str | None = Field(
        default=None, description="Principal allowed to self-service reset"
    )
    last_reset_at: datetime | None = Field(
        default=None, description="Most recent binding clear"
    )

    @field_validator("created_at", "expires_at", "last_reset_at")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def is_unlimited(self) -> bool:
        """Return True if validations never consume usage."""
        return self.usage_remaining is None

    def is_expired(self, now: datetime) -> bool:
        """Return True once ``now`` is past the expiry timestamp."""
        return now > self.expires_at

    @property
    def is_exhausted(self) -> bool:
        """Return True if a bounded key has no validations left."""
        return self.usage_remaining is not None and self.usage_remaining <= 0

    def status(self, now: datetime) -> KeyStatus:
        """Return the display status of the key at ``now``."""
        if self.is_expired(now):
            return KeyStatus.EXPIRED
        if self.is_exhausted:
            return KeyStatus.EXHAUSTED
        if self.bound_identity is not None:
            return KeyStatus.BOUND
        return KeyStatus.UNBOUND

    def to_document(self) -> dict:
        """Return the persisted representation of this record."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict) -> KeyRecord:
        """Build a record from its persisted representation."""
        return cls.model_validate(dict(document))


OutcomeT = TypeVar("OutcomeT", bound=Enum)


@dataclass(frozen=True, slots=True)
class Transition(Generic[OutcomeT]):
    """Outcome of a lifecycle decision plus the record state to persist.

    ``record`` is ``None`` when the decision leaves the stored record untouched.
    ``retry_after`` is only set for ``ResetOutcome.COOLDOWN_ACTIVE``.
    """

    outcome: OutcomeT
    record: KeyRecord | None = None
    retry_after: timedelta | None = None


__all__ = [
    "MIN_TOKEN_SUFFIX_LENGTH",
    "TOKEN_ALPHABET",
    "KeyRecord",
    "KeyStatus",
    "ResetOutcome",
    "RevokeOutcome",
    "Transition",
    "ValidationOutcome",
]
