from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import click.utils as click_utils
import typer

from ratchetcov._meta import logger
from ratchetcov.cli.errors import EXIT_CONFIG
from ratchetcov.config import LOG_FORMAT, ThresholdStore, discover_config
from ratchetcov.errors import ConfigError

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Threshold configuration file (default: ./ratchetcov.json)."),
]
ColorOption = Annotated[bool, typer.Option("--color", help="Force color output")]
NoColorOption = Annotated[bool, typer.Option("--no-color", help="Disable color output")]


def resolve_use_color(*, color: bool, no_color: bool) -> bool:
    # CLI flags take precedence over terminal detection.
    if no_color:
        return False
    if color:
        return True
    try:
        is_tty = bool(getattr(sys.stdout, "isatty", lambda: False)())
    except OSError:
        return False
    return is_tty and not click_utils.should_strip_ansi(sys.stdout)


def configure_logging(*, quiet: bool, verbose: bool, debug: bool) -> None:
    """Configure logging based on *quiet*/*verbose*/*debug*."""
    level = logging.ERROR if quiet else (logging.DEBUG if verbose or debug else logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger.setLevel(level)
    if debug:
        logger.debug("debug mode active")


def open_store(config: Path | None) -> ThresholdStore:
    if config is not None:
        return ThresholdStore(config)
    json_path, seed = discover_config(Path.cwd())
    return ThresholdStore(json_path, seed=seed)


def fail_config(exc: ConfigError) -> typer.Exit:
    typer.echo(f"ERROR: {exc}", err=True)
    return typer.Exit(code=EXIT_CONFIG)


__all__ = [
    "ColorOption",
    "ConfigOption",
    "NoColorOption",
    "configure_logging",
    "fail_config",
    "open_store",
    "resolve_use_color",
]
