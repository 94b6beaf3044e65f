from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.table import Table

from ratchetcov.model import codec
from ratchetcov.model.metrics import CATALOG
from ratchetcov.model.thresholds import TierName

if TYPE_CHECKING:
    from ratchetcov.model.result import CoverageResult
    from ratchetcov.model.thresholds import ThresholdConfig

_WIDTH = 100


def _format_target(stored: int | None) -> str:
    return "-" if stored is None else f"{codec.to_percent(stored):.2f}%"


def _style_observed(fraction: float, required: float | None) -> str:
    text = f"{codec.round_to_two_decimal_percent(fraction * 10_000):.2f}%"
    if required is None:
        return text
    if fraction < required:
        return f"[red]{text}[/red]"
    return f"[green]{text}[/green]"


def _to_text(table: Table, *, color: bool) -> str:
    buf = StringIO()
    console = Console(file=buf, force_terminal=color, no_color=not color, width=_WIDTH)
    console.print(table)
    return buf.getvalue().rstrip()


def render_coverage_summary(result: CoverageResult, config: ThresholdConfig, *, color: bool = False) -> str:
    """Render observed coverage next to every tier's target.

    Observed values are red when below the failing tier, green otherwise.
    """
    table = Table(title="Coverage", box=box.SIMPLE_HEAVY, header_style="bold")
    table.add_column("Metric")
    table.add_column("Covered", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Observed", justify="right")
    for name in TierName:
        table.add_column(name.value.capitalize(), justify="right")

    ratios = result.ratios()
    for metric in result.metrics():
        ratio = ratios[metric]
        failing = config.failing.get(metric)
        table.add_row(
            metric.label,
            str(ratio.covered),
            str(ratio.total),
            _style_observed(ratio.fraction, None if failing is None else codec.decode(failing)),
            *(_format_target(config.tier(name).get(metric)) for name in TierName),
        )
    return _to_text(table, color=color)


def render_thresholds(config: ThresholdConfig, *, color: bool = False) -> str:
    """Render the configured targets of every tier."""
    table = Table(title=f"Coverage targets (version {config.version})", box=box.SIMPLE_HEAVY, header_style="bold")
    table.add_column("Metric")
    for name in TierName:
        table.add_column(name.value.capitalize(), justify="right")
    for metric in CATALOG:
        cells = [config.tier(name).get(metric) for name in TierName]
        if all(cell is None for cell in cells):
            continue
        table.add_row(metric.label, *(_format_target(cell) for cell in cells))
    return _to_text(table, color=color)


__all__ = ["render_coverage_summary", "render_thresholds"]
