from __future__ import annotations

import typer

from ratchetcov.cli._shared import (
    ColorOption,
    ConfigOption,
    NoColorOption,
    fail_config,
    open_store,
    resolve_use_color,
)
from ratchetcov.cli.errors import EXIT_OK
from ratchetcov.errors import ConfigError
from ratchetcov.render.summary import render_thresholds


def show_cmd(
    config: ConfigOption = None,
    color: ColorOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Print the configured targets of every tier."""
    try:
        settings = open_store(config).load()
    except ConfigError as exc:
        raise fail_config(exc) from exc

    use_color = resolve_use_color(color=color, no_color=no_color)
    typer.echo(render_thresholds(settings.thresholds, color=use_color))
    enabled = [name for name, value in settings.policy.to_mapping().items() if value]
    typer.echo(f"policy: {', '.join(enabled) or 'none'}")
    raise typer.Exit(code=EXIT_OK)


def register(app: typer.Typer) -> None:
    app.command("show")(show_cmd)


__all__ = ["register"]
