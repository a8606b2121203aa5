"""CLI commands for keygate."""

import uuid

import typer

from keygate.cli.keys import app as keys_app
from keygate.core.logging import correlation_id_context

main_app = typer.Typer(
    name="keygate",
    help="keygate access key CLI",
    no_args_is_help=True,
)
main_app.add_typer(keys_app, name="keys")


def main() -> None:
    """Entry point for the CLI; each invocation logs under its own correlation id."""
    with correlation_id_context(f"cli-{uuid.uuid4().hex}"):
        main_app()


__all__ = ["main", "main_app"]
