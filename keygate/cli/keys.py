"""CLI commands for access key management.

Local operators run these against the key store file directly and are
treated as privileged.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from keygate.adapters.legacy_keys import read_legacy_keys
from keygate.bootstrap import build_default_service_container
from keygate.core.exceptions import PersistenceError
from keygate.core.key_models import KeyStatus, ResetOutcome, RevokeOutcome
from keygate.services.admin_gateway import AdminGateway

app = typer.Typer(name="keys", help="Manage access keys")
console = Console()

_STATUS_STYLES = {
    KeyStatus.UNBOUND: "[green]unbound[/green]",
    KeyStatus.BOUND: "[cyan]bound[/cyan]",
    KeyStatus.EXHAUSTED: "[yellow]exhausted[/yellow]",
    KeyStatus.EXPIRED: "[red]expired[/red]",
}


def _get_gateway() -> AdminGateway:
    """Get the admin gateway wired to the default key store."""
    return build_default_service_container().admin


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(1)


@app.command("genkey")
def generate_key(
    ttl_hours: float | None = typer.Option(None, "--ttl-hours", "-t", help="Hours until expiry"),
    uses: int | None = typer.Option(None, "--uses", "-u", help="Allowed validations"),
    unlimited: bool = typer.Option(False, "--unlimited", help="Allow unlimited validations"),
) -> None:
    """Issue a new key."""
    gateway = _get_gateway()
    ttl = timedelta(hours=ttl_hours) if ttl_hours else None

    try:
        record = gateway.issue_key(
            is_privileged=True, ttl=ttl, usage_quota=uses, unlimited=unlimited
        )
    except (ValueError, PersistenceError) as e:
        raise _fail(str(e)) from e

    usage = "unlimited" if record.is_unlimited else str(record.usage_remaining)
    console.print("\n[green]Key generated.[/green]\n")
    console.print(f"[bold]Expires:[/bold] {record.expires_at.isoformat()}")
    console.print(f"[bold]Usage:[/bold] {usage}")
    console.print(f"\n[bold cyan]{record.token}[/bold cyan]\n")


@app.command("list")
def list_keys() -> None:
    """List all keys with their current status."""
    gateway = _get_gateway()
    try:
        records = gateway.list_keys(is_privileged=True)
    except PersistenceError as e:
        raise _fail(str(e)) from e

    if not records:
        console.print("[dim]No keys available.[/dim]")
        return

    now = datetime.now(timezone.utc)
    table = Table(title="Issued Keys")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Expires")
    table.add_column("Uses Left")
    table.add_column("Bound")
    table.add_column("Owner")
    table.add_column("Last Reset")

    for record in records:
        table.add_row(
            record.token,
            _STATUS_STYLES[record.status(now)],
            record.expires_at.strftime("%Y-%m-%d %H:%M"),
            "∞" if record.is_unlimited else str(record.usage_remaining),
            "yes" if record.bound_identity else "no",
            record.owning_principal or "-",
            record.last_reset_at.strftime("%Y-%m-%d %H:%M") if record.last_reset_at else "-",
        )

    console.print(table)


@app.command("revoke")
def revoke_key(
    token: str = typer.Argument(..., help="Key to revoke"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """Revoke (delete) a key."""
    gateway = _get_gateway()

    if not force:
        confirm = typer.confirm(f"Are you sure you want to revoke key '{token}'?")
        if not confirm:
            console.print("[dim]Aborted.[/dim]")
            raise typer.Exit(0)

    try:
        outcome = gateway.revoke_key(token, is_privileged=True)
    except PersistenceError as e:
        raise _fail(str(e)) from e

    if outcome is RevokeOutcome.REVOKED:
        console.print(f"[green]Key '{token}' has been removed.[/green]")
    else:
        console.print(f"[red]Key '{token}' not found.[/red]")
        raise typer.Exit(1)


@app.command("reset")
def reset_key(
    token: str = typer.Argument(..., help="Key whose binding should be cleared"),
    principal: str = typer.Option("cli", "--principal", "-p", help="Requesting principal"),
    privileged: bool = typer.Option(
        True,
        "--privileged/--self-service",
        help="Bypass ownership and cooldown checks",
    ),
) -> None:
    """Clear the identity bound to a key."""
    gateway = _get_gateway()
    try:
        transition = gateway.reset_key(token, principal, is_privileged=privileged)
    except (ValueError, PersistenceError) as e:
        raise _fail(str(e)) from e

    outcome = transition.outcome
    if outcome is ResetOutcome.RESET:
        console.print(f"[green]Binding for '{token}' has been cleared.[/green]")
        return
    if outcome is ResetOutcome.COOLDOWN_ACTIVE and transition.retry_after is not None:
        minutes = math.ceil(transition.retry_after.total_seconds() / 60)
        console.print(f"[yellow]Reset on cooldown; try again in {minutes} minute(s).[/yellow]")
    elif outcome is ResetOutcome.OWNERSHIP_MISMATCH:
        console.print(f"[red]Key '{token}' belongs to another principal.[/red]")
    else:
        console.print(f"[red]Key '{token}' not found.[/red]")
    raise typer.Exit(1)


@app.command("import-legacy")
def import_legacy(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Legacy keys.json"),
) -> None:
    """Import keys from a legacy keys.json file."""
    gateway = _get_gateway()
    try:
        records = read_legacy_keys(path)
        imported, skipped = gateway.import_keys(records, is_privileged=True)
    except (OSError, ValueError, PersistenceError) as e:
        raise _fail(str(e)) from e

    console.print(f"[green]Imported {imported} key(s)[/green], skipped {skipped} existing.")


__all__ = ["app"]
