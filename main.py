"""ASGI entrypoint: ``uvicorn main:app``."""

from keygate.api_factory import create_app

app = create_app()
