"""Application service layer wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from keygate.core.ports import KeyStorePort

if TYPE_CHECKING:  # pragma: no cover - type narrowing only
    from .admin_gateway import AdminGateway
    from .validation import ValidationService


@dataclass(slots=True)
class ServiceContainer:
    """Aggregate of application-level services sharing one key store."""

    store: KeyStorePort
    validation: "ValidationService"
    admin: "AdminGateway"


def build_default_services(*, store: KeyStorePort) -> ServiceContainer:
    """Return a service container wired to ``store`` with configured defaults."""

    # pylint: disable=import-outside-toplevel
    from .admin_gateway import AdminGateway
    from .validation import ValidationService

    return ServiceContainer(
        store=store,
        validation=ValidationService(store),
        admin=AdminGateway.from_settings(store),
    )


__all__ = ["ServiceContainer", "build_default_services"]
