"""
Back-office CLI.

Operational commands that run outside the API: partner bootstrap, history
retention cleanup, order number inspection and health checks.

Usage:
    python cli.py create-partner "Pizza Place" pizza-place owner
    python cli.py history-cleanup --partner-id 1 --days 60
    python cli.py history-cleanup --auto
"""

import asyncio
import time

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import select, text

app = typer.Typer(
    name="backoffice",
    help="Delivery back-office operations CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Partner Commands
# =============================================================================


@app.command()
def create_partner(
    name: str = typer.Argument(..., help="Business name"),
    url_suffix: str = typer.Argument(..., help="Login suffix, unique across partners"),
    owner_login: str = typer.Argument(..., help="Owner login"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    next_order_number: int = typer.Option(1, min=1, help="First order number"),
):
    """Create a partner with its settings row and an owner account."""
    from backoffice.models import Base, Partner, PartnerSettings, User
    from shared.config.constants import Limits, PartnerStatus, Roles
    from shared.infrastructure.db import engine, get_db_context
    from shared.security.password import hash_password

    suffix = url_suffix.strip().lower()
    if not name.strip() or not suffix:
        console.print("[red]✗ Name and url suffix are required[/red]")
        raise typer.Exit(1)
    if len(password) < Limits.MIN_PASSWORD_LENGTH:
        console.print(f"[red]✗ Password must be at least {Limits.MIN_PASSWORD_LENGTH} characters[/red]")
        raise typer.Exit(1)

    Base.metadata.create_all(bind=engine)
    with get_db_context() as db:
        if db.scalar(select(Partner.id).where(Partner.url_suffix == suffix)) is not None:
            console.print(f"[red]✗ Url suffix '{suffix}' is already taken[/red]")
            raise typer.Exit(1)

        partner = Partner(name=name.strip(), url_suffix=suffix, status=PartnerStatus.ACTIVE)
        partner.settings = PartnerSettings(next_order_number=next_order_number)
        db.add(partner)
        db.flush()
        owner = User(
            partner_id=partner.id,
            login=owner_login.strip(),
            password_hash=hash_password(password),
            role=Roles.OWNER,
        )
        db.add(owner)
        db.commit()

        table = Table(title="Partner created")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Partner id", str(partner.id))
        table.add_row("Name", partner.name)
        table.add_row("Url suffix", partner.url_suffix)
        table.add_row("Owner login", owner.login)
        console.print(table)


# =============================================================================
# History Commands
# =============================================================================


@app.command()
def history_cleanup(
    partner_id: int = typer.Option(None, help="Partner to clean up"),
    days: int = typer.Option(None, min=1, help="Retention in days (defaults to partner settings)"),
    auto: bool = typer.Option(False, "--auto", help="Every partner with automatic cleanup enabled"),
):
    """Delete archived orders older than the retention period."""
    from backoffice.services.domain import HistoryService
    from shared.infrastructure.db import get_db_context

    if auto == (partner_id is not None):
        console.print("[red]✗ Pass either --partner-id or --auto[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        service = HistoryService(db)
        table = Table(title="History cleanup")
        table.add_column("Partner", style="cyan")
        table.add_column("Deleted", style="green")

        if auto:
            results = service.cleanup_all()
            if not results:
                console.print("[yellow]No partners have automatic cleanup enabled[/yellow]")
                return
            for pid, deleted in results.items():
                table.add_row(str(pid), str(deleted))
        else:
            result = service.cleanup(partner_id, days)
            table.add_column("Retention (days)", style="yellow")
            table.add_row(str(partner_id), str(result.deleted), str(result.retention_days))

        console.print(table)


# =============================================================================
# Order Commands
# =============================================================================


@app.command()
def next_order_number(
    partner_id: int = typer.Argument(..., help="Partner id"),
):
    """Show the number the next order of a partner will get."""
    from backoffice.models import PartnerSettings
    from shared.infrastructure.db import get_db_context

    with get_db_context() as db:
        value = db.scalar(
            select(PartnerSettings.next_order_number).where(PartnerSettings.partner_id == partner_id)
        )
    if value is None:
        console.print(f"[yellow]Partner {partner_id} has no settings yet; numbering starts at 1[/yellow]")
        return
    console.print(f"[green]Next order number for partner {partner_id}: {value}[/green]")


# =============================================================================
# Health Commands
# =============================================================================


@app.command()
def health(
    api_url: str = typer.Option("http://localhost:8000", help="Back-office API base URL"),
):
    """Check the API, the database and Redis."""
    import httpx

    from shared.infrastructure.db import get_db_context
    from shared.infrastructure.events import get_redis_pool

    table = Table(title="Service Health")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Response Time", style="yellow")

    start = time.time()
    try:
        response = httpx.get(f"{api_url.rstrip('/')}/api/health", timeout=5.0)
        elapsed = (time.time() - start) * 1000
        if response.status_code == 200:
            table.add_row("API", "✓ Healthy", f"{elapsed:.0f}ms")
        else:
            table.add_row("API", f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")
    except httpx.HTTPError as e:
        table.add_row("API", f"✗ {type(e).__name__}", "-")

    start = time.time()
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
        table.add_row("Database", "✓ Healthy", f"{(time.time() - start) * 1000:.0f}ms")
    except Exception as e:
        table.add_row("Database", f"✗ {type(e).__name__}", "-")

    async def _redis() -> None:
        redis_client = await get_redis_pool()
        await redis_client.ping()

    start = time.time()
    try:
        asyncio.run(_redis())
        table.add_row("Redis", "✓ Healthy", f"{(time.time() - start) * 1000:.0f}ms")
    except Exception as e:
        table.add_row("Redis", f"✗ {type(e).__name__}", "-")

    console.print(table)


if __name__ == "__main__":
    app()
