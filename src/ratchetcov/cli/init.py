from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from ratchetcov.cli.errors import EXIT_CONFIG, EXIT_OK
from ratchetcov.config import CONFIG_FILENAME, Settings, save_settings
from ratchetcov.errors import ConfigError
from ratchetcov.model.thresholds import ThresholdConfig, ThresholdSet, default_config, parse_targets
from ratchetcov.render.painter import check_encoding


def _targets(value: str | None, option: str) -> ThresholdSet | None:
    if value is None:
        return None
    try:
        return parse_targets(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=option) from exc


def init_cmd(
    config: Annotated[
        Path,
        typer.Option("--config", help="Where to write the configuration."),
    ] = Path(CONFIG_FILENAME),
    healthy: Annotated[
        str | None,
        typer.Option("--healthy", help="Healthy targets, e.g. 'lines=80,conditionals=70'."),
    ] = None,
    unhealthy: Annotated[
        str | None,
        typer.Option("--unhealthy", help="Unhealthy targets."),
    ] = None,
    failing: Annotated[
        str | None,
        typer.Option("--failing", help="Failing targets."),
    ] = None,
    pattern: Annotated[
        str | None,
        typer.Option("--pattern", "-p", help="Default report pattern to store."),
    ] = None,
    source_encoding: Annotated[
        str | None,
        typer.Option("--source-encoding", help="Encoding used when painting sources."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing configuration."),
    ] = False,
) -> None:
    """Write a starting threshold configuration."""
    if config.exists() and not force:
        typer.echo(f"ERROR: {config} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=EXIT_CONFIG)

    if source_encoding is not None:
        try:
            check_encoding(source_encoding)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--source-encoding") from exc

    given = [_targets(healthy, "--healthy"), _targets(unhealthy, "--unhealthy"), _targets(failing, "--failing")]
    if all(tier is None for tier in given):
        thresholds = default_config()
    else:
        thresholds = ThresholdConfig(*(tier or ThresholdSet() for tier in given))

    try:
        save_settings(Settings(thresholds=thresholds, pattern=pattern, source_encoding=source_encoding), config)
    except ConfigError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG) from exc
    typer.echo(f"wrote {config}")
    raise typer.Exit(code=EXIT_OK)


def register(app: typer.Typer) -> None:
    app.command("init")(init_cmd)


__all__ = ["register"]
