"""Database CLI commands for Driftwatch."""

import asyncio
from pathlib import Path
from typing import Annotated

import asyncpg
import typer
from rich.console import Console
from rich.panel import Panel

app = typer.Typer(no_args_is_help=True)
console = Console()

DsnOption = Annotated[
    str,
    typer.Option(
        "--dsn",
        "-d",
        envvar="DRIFTWATCH_DATABASE_URL",
        help="PostgreSQL connection string",
    ),
]


def schema_path() -> Path:
    return Path(__file__).parent.parent / "db" / "schema.sql"


async def execute_schema(dsn: str, schema_sql: str) -> None:
    """Execute schema SQL against PostgreSQL."""
    conn = await asyncpg.connect(dsn=dsn)
    try:
        await conn.execute(schema_sql)
    finally:
        await conn.close()


@app.command()
def setup_schema(dsn: DsnOption) -> None:
    """Apply the Driftwatch schema.

    Creates the project, report, metric, threshold and alert tables. Every
    statement is idempotent, so running it twice is harmless.
    """
    console.print(Panel.fit("Setting up Driftwatch Schema", style="bold blue"))

    path = schema_path()
    if not path.exists():
        console.print(f"[red]Error:[/red] Schema file not found: {path}")
        raise typer.Exit(1)

    schema_sql = path.read_text()

    with console.status("[bold green]Applying schema..."):
        try:
            asyncio.run(execute_schema(dsn, schema_sql))
        except (OSError, asyncpg.PostgresError) as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None

    console.print("[green]✓[/green] Schema setup complete!")


@app.command()
def check_connection(dsn: DsnOption) -> None:
    """Test the database connection."""
    console.print(Panel.fit("Testing Database Connection", style="bold blue"))

    async def test_connection() -> str:
        conn = await asyncpg.connect(dsn=dsn)
        try:
            return await conn.fetchval("SELECT version()")
        finally:
            await conn.close()

    with console.status("[bold green]Connecting..."):
        try:
            version = asyncio.run(test_connection())
        except (OSError, asyncpg.PostgresError) as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None

    console.print("[green]✓[/green] Connected successfully!")
    console.print(f"  Version: [dim]{version}[/dim]")
