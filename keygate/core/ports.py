"""Protocol definitions for infrastructure adapters."""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from typing import Callable, Protocol

from keygate.core.key_models import KeyRecord, OutcomeT, Transition

Mutator = Callable[[KeyRecord], Transition[OutcomeT]]


class KeyStorePort(Protocol):
    """Port exposing durable, serialized access to key records."""

    def load(self) -> dict[str, KeyRecord]:
        """Return every stored record keyed by token."""
        ...

    def with_record(self, token: str, mutator: Mutator[OutcomeT]) -> Transition[OutcomeT]:
        """Run ``mutator`` on the record for ``token`` and persist its result atomically.

        Raises ``KeyNotFoundError`` when ``token`` is absent and
        ``PersistenceError`` when the result cannot be committed.
        """
        ...

    def insert(self, record: KeyRecord) -> None:
        """Store a new record; raises ``DuplicateKeyError`` if the token exists."""
        ...

    def remove(self, token: str) -> KeyRecord | None:
        """Delete the record for ``token``; return it, or ``None`` if it was absent."""
        ...

    def snapshot(self) -> list[KeyRecord]:
        """Return a point-in-time copy of every stored record."""
        ...


__all__ = ["KeyStorePort", "Mutator"]
