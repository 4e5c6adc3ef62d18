"""Driftwatch CLI."""

import logging
from typing import Annotated

import typer
import uvicorn

from driftwatch.cli.db import app as db_app
from driftwatch.cli.evaluate import evaluate_command
from driftwatch.cli.report import app as report_app
from driftwatch.models import DriftwatchConfig

app = typer.Typer(
    name="driftwatch",
    help="Driftwatch - benchmark tracking with threshold alerts",
    no_args_is_help=True,
)

app.add_typer(db_app, name="db", help="Database operations")
app.add_typer(report_app, name="report", help="Report submission")
app.command(name="evaluate")(evaluate_command)


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Bind port")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the Driftwatch API server."""
    config = DriftwatchConfig()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "driftwatch.api:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        reload=reload,
    )


@app.callback()
def main() -> None:
    """Driftwatch CLI."""
    pass


if __name__ == "__main__":
    app()
