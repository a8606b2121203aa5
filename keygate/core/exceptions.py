"""Core exception types shared across layers.

Each exception carries a stable ``code`` so callers (HTTP clients, game
scripts, dashboards) can branch on it without parsing messages.
"""


class KeyGateError(Exception):
    """Base class for domain errors raised by keygate."""

    code = "error"


class KeyNotFoundError(KeyGateError):
    """Raised when a token is not present in the key store."""

    code = "not_found"

    def __init__(self, token: str) -> None:
        super().__init__(f"Key not found: {token}")
        self.token = token


class DuplicateKeyError(KeyGateError):
    """Raised when inserting a token that already exists."""

    code = "duplicate_key"

    def __init__(self, token: str) -> None:
        super().__init__(f"Key already exists: {token}")
        self.token = token


class ForbiddenError(KeyGateError):
    """Raised when a caller without elevated privilege attempts an admin action."""

    code = "forbidden"


class PersistenceError(KeyGateError):
    """Raised when the key store cannot be read, written, or locked in time."""

    code = "persistence_failure"


__all__ = [
    "KeyGateError",
    "KeyNotFoundError",
    "DuplicateKeyError",
    "ForbiddenError",
    "PersistenceError",
]
