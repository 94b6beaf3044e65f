from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from click.core import ParameterSource

from ratchetcov.cli._shared import (
    ColorOption,
    ConfigOption,
    NoColorOption,
    configure_logging,
    fail_config,
    open_store,
    resolve_use_color,
)
from ratchetcov.cli.errors import (
    EXIT_DATAERR,
    EXIT_GENERIC,
    EXIT_IOERR,
    EXIT_NOINPUT,
    EXIT_OK,
    EXIT_THRESHOLD,
    EXIT_UNSTABLE,
)
from ratchetcov.engine.publish import Outcome, OutcomeStatus, publish
from ratchetcov.errors import (
    ConfigError,
    CoverageXMLNotFoundError,
    InvalidCoverageXMLError,
    NoReportsError,
    ReportTransportError,
)
from ratchetcov.model.policy import BuildStatus
from ratchetcov.render.summary import render_coverage_summary

_STATUS_EXIT = {
    OutcomeStatus.PASS: EXIT_OK,
    OutcomeStatus.PASS_WITH_RATCHET: EXIT_OK,
    OutcomeStatus.UNSTABLE: EXIT_UNSTABLE,
    OutcomeStatus.FAILED: EXIT_THRESHOLD,
}


def _exit_code(outcome: Outcome) -> int:
    if outcome.failure == NoReportsError.kind:
        return EXIT_NOINPUT
    return _STATUS_EXIT[outcome.status]


def _policy_overrides(ctx: typer.Context, **flags: tuple[str, bool]) -> dict[str, bool]:
    """Policy switches given on the command line; the rest come from the configuration."""
    return {
        field: value
        for field, (param, value) in flags.items()
        if ctx.get_parameter_source(param) not in {None, ParameterSource.DEFAULT}
    }


def _status_line(outcome: Outcome) -> str:
    if outcome.skipped:
        return "coverage: skipped"
    if outcome.reason:
        return f"coverage: {outcome.status} ({outcome.reason})"
    if outcome.changes:
        return f"coverage: {outcome.status} ({len(outcome.changes)} target(s) raised)"
    return f"coverage: {outcome.status}"


def check_cmd(
    ctx: typer.Context,
    reports: Annotated[
        list[Path] | None,
        typer.Argument(help="Coverage XML file(s). If omitted, reports are discovered with --pattern."),
    ] = None,
    workspace: Annotated[
        Path,
        typer.Option("--workspace", "-w", help="Directory the report pattern is resolved against."),
    ] = Path(),
    pattern: Annotated[
        str | None,
        typer.Option("--pattern", "-p", help="Comma separated report globs (default: **/coverage.xml)."),
    ] = None,
    build_dir: Annotated[
        Path | None,
        typer.Option("--build-dir", help="Copy matched reports into DIR as coverage.xml, coverage1.xml, ..."),
    ] = None,
    config: ConfigOption = None,
    build_status: Annotated[
        BuildStatus,
        typer.Option("--build-status", help="Status of the build before coverage.", case_sensitive=False),
    ] = BuildStatus.SUCCESS,
    owner: Annotated[
        str | None,
        typer.Option("--owner", help="Identifier of the build the coverage belongs to."),
    ] = None,
    only_stable: Annotated[
        bool,
        typer.Option("--only-stable/--any-status", help="Only evaluate builds that succeeded so far."),
    ] = False,
    strict: Annotated[
        bool,
        typer.Option("--strict/--no-strict", help="Fail instead of marking unstable below the failing tier."),
    ] = False,
    enforce_health: Annotated[
        bool,
        typer.Option("--enforce-health/--no-enforce-health", help="Fail below the unhealthy tier."),
    ] = False,
    ratchet_health: Annotated[
        bool,
        typer.Option("--ratchet-health/--no-ratchet-health", help="Raise unhealthy targets after a clean pass."),
    ] = False,
    ratchet_stability: Annotated[
        bool,
        typer.Option(
            "--ratchet-stability/--no-ratchet-stability",
            help="Raise failing targets after a clean pass.",
        ),
    ] = False,
    fail_no_reports: Annotated[
        bool,
        typer.Option("--fail-no-reports/--allow-no-reports", help="Fail when no report matched."),
    ] = True,
    paint_dir: Annotated[
        Path | None,
        typer.Option("--paint-dir", help="Write annotated source files into DIR."),
    ] = None,
    source_encoding: Annotated[
        str | None,
        typer.Option("--source-encoding", help="Encoding of painted source files (default: utf-8)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Evaluate without saving ratcheted targets."),
    ] = False,
    color: ColorOption = False,
    no_color: NoColorOption = False,
    quiet: Annotated[bool, typer.Option("-q", "--quiet", help="Emit only errors")] = False,
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Emit diagnostic logging")] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Show debug logging")] = False,
) -> None:
    """Evaluate coverage reports against the configured tiers and ratchet on a clean pass."""
    configure_logging(quiet=quiet, verbose=verbose, debug=debug)
    overrides = _policy_overrides(
        ctx,
        only_stable_input_builds=("only_stable", only_stable),
        strict=("strict", strict),
        enforce_health=("enforce_health", enforce_health),
        auto_ratchet_health=("ratchet_health", ratchet_health),
        auto_ratchet_stability=("ratchet_stability", ratchet_stability),
        fail_if_no_reports=("fail_no_reports", fail_no_reports),
    )

    try:
        store = open_store(config)
        outcome = publish(
            workspace,
            store,
            pattern=pattern,
            reports=reports or None,
            build_dir=build_dir,
            policy_overrides=overrides,
            build_status=build_status,
            owner=owner,
            paint_dir=paint_dir,
            source_encoding=source_encoding,
            dry_run=dry_run,
        )
    except ConfigError as exc:
        raise fail_config(exc) from exc
    except CoverageXMLNotFoundError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=EXIT_NOINPUT) from exc
    except InvalidCoverageXMLError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=EXIT_DATAERR) from exc
    except ReportTransportError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=EXIT_IOERR) from exc
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=EXIT_GENERIC) from exc

    if outcome.result is not None and outcome.config is not None and not quiet:
        use_color = resolve_use_color(color=color, no_color=no_color)
        typer.echo(render_coverage_summary(outcome.result, outcome.config, color=use_color))
    typer.echo(_status_line(outcome))
    raise typer.Exit(code=_exit_code(outcome))


def register(app: typer.Typer) -> None:
    app.command("check")(check_cmd)


__all__ = ["register"]
