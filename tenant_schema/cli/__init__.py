"""
Command Line Interface for tenant schema reconciliation.
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..catalog.postgres import PostgresBackend
from ..config import get_settings
from ..core.errors import ReconciliationError
from ..core.graph import validate_graph
from ..core.observer import configure_logging
from ..core.orchestrator import reconcile_schema
from ..db.base import get_database_url, tenant_connection, tenant_database_url
from ..engine.drift import detect_drift
from ..modules.registry import default_registry

app = typer.Typer(help="Tenant schema reconciliation for per-tenant PostgreSQL databases")
console = Console()


def _resolve_url(database_url: Optional[str], tenant: Optional[str]) -> str:
    url = get_database_url(database_url)
    if tenant:
        url = tenant_database_url(url, tenant)
    return url


@app.command()
def plan():
    """Show the order modules run in."""
    registry = default_registry()
    ordered = validate_graph(list(registry))
    owners = registry.owners()

    table = Table(title="Module Plan", show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan")
    table.add_column("Module", style="yellow")
    table.add_column("Depends On")
    table.add_column("Tables", style="green")

    for position, module in enumerate(ordered, start=1):
        tables = sum(1 for owner in owners.values() if owner == module.name)
        table.add_row(
            str(position),
            module.name,
            ", ".join(module.depends_on) or "-",
            str(tables),
        )

    console.print(table)


@app.command()
def reconcile(
    database_url: Optional[str] = typer.Option(None, help="Database URL (defaults to DATABASE_URL)"),
    tenant: Optional[str] = typer.Option(None, help="Tenant database name on the same server"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
):
    """Bring one tenant database to the target schema."""
    settings = get_settings()
    configure_logging(settings)
    url = _resolve_url(database_url, tenant)

    if not as_json:
        console.print(Panel.fit("Reconciling tenant schema", style="bold blue"))

    try:
        with tenant_connection(url) as connection:
            report = reconcile_schema(connection, settings=settings)
    except ReconciliationError as exc:
        if as_json:
            console.print_json(json.dumps(exc.to_dict(), default=str))
        else:
            for error in exc.errors:
                console.print(f"[red]fatal[/red] {error.code}: {error.message}")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(json.dumps(report.to_dict(), default=str))
        return

    console.print(f"Modules: {len(report.modules)}, actions: {len(report.actions)}")
    for warning in report.warnings:
        console.print(f"[yellow]warning[/yellow] {warning.code}: {warning.message}")
    console.print(f"Schema version {report.schema_version}")


@app.command()
def drift(
    database_url: Optional[str] = typer.Option(None, help="Database URL (defaults to DATABASE_URL)"),
    tenant: Optional[str] = typer.Option(None, help="Tenant database name on the same server"),
):
    """List what the next reconciliation would change, without changing it."""
    settings = get_settings()
    url = _resolve_url(database_url, tenant)

    with tenant_connection(url) as connection:
        backend = PostgresBackend(connection, schema=settings.tenant_schema_name)
        result = detect_drift(backend, default_registry())

    if result.is_clean:
        console.print("No drift")
        return

    table = Table(title="Schema Drift", show_header=True, header_style="bold cyan")
    table.add_column("Kind", style="yellow")
    table.add_column("Objects")
    for kind, objects in result.to_dict().items():
        if kind == "is_clean" or not objects:
            continue
        table.add_row(kind.replace("_", " "), ", ".join(objects))
    console.print(table)
    raise typer.Exit(code=2)


def main():
    app()


if __name__ == "__main__":
    main()
