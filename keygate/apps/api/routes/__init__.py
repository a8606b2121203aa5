"""Router namespace exports for FastAPI include hooks."""

from . import admin_keys, health, keys, validate

__all__ = ["admin_keys", "health", "keys", "validate"]
