"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from keygate.apps.api.middleware import CorrelationIdMiddleware
from keygate.core.logging import get_logger
from keygate.services import ServiceContainer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and shutdown of the key service."""
    services = getattr(app.state, "services", None)
    store_path = getattr(getattr(services, "store", None), "path", None)
    logger.info("Starting keygate...", extra={"store": str(store_path) if store_path else None})
    try:
        yield
    finally:
        logger.info("keygate stopped.")


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Build the FastAPI application with configured routers."""
    if services is None:
        raise RuntimeError("Service container must be provided when creating the app.")
    app = FastAPI(lifespan=lifespan)
    app.state.services = services
    app.add_middleware(CorrelationIdMiddleware)

    # Import lazily to avoid potential circular imports when routers grow.
    # pylint: disable-next=import-outside-toplevel
    from .routes import admin_keys, health, keys, validate

    app.include_router(health.router)
    app.include_router(validate.router)
    app.include_router(keys.router)
    app.include_router(admin_keys.router)
    return app


__all__ = ["create_app", "lifespan"]
