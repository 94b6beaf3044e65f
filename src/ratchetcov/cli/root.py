from __future__ import annotations

from typing import Annotated

import typer
from typer.main import get_command

from ratchetcov import __version__
from ratchetcov.cli import check, init, show


def create_app() -> typer.Typer:
    app = typer.Typer(help="Coverage quality gates with one-way threshold ratcheting.")

    @app.callback(invoke_without_command=True)
    def _root(
        ctx: typer.Context,
        *,
        version: Annotated[
            bool,
            typer.Option("--version", help="Show version and exit"),
        ] = False,
    ) -> None:
        if version:
            typer.echo(f"ratchetcov {__version__}")
            raise typer.Exit
        if ctx.invoked_subcommand is None:
            typer.echo(ctx.get_help())

    check.register(app)
    show.register(app)
    init.register(app)

    return app


def main() -> None:
    app = create_app()
    get_command(app)()


# Click-compatible object for tooling that imports it
cli = get_command(create_app())

__all__ = ["cli", "create_app", "main"]
