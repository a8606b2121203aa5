"""Application bootstrap helpers for assembling the service container."""

from __future__ import annotations

from pathlib import Path

from keygate.adapters.key_store import TinyDBKeyStore
from keygate.services import ServiceContainer, build_default_services


def build_default_service_container(db_path: Path | None = None) -> ServiceContainer:
    """Return the default service container wired to the TinyDB key store."""

    return build_default_services(store=TinyDBKeyStore(db_path=db_path))


__all__ = ["build_default_service_container"]
