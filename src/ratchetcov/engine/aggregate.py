"""Merge the per-report coverage trees of one build."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ratchetcov._meta import logger
from ratchetcov.errors import NoCoverageDataError
from ratchetcov.model.result import CoverageResult

if TYPE_CHECKING:
    from collections.abc import Sequence

CURRENT_DIR = "."


@dataclass(frozen=True, slots=True)
class ParsedReport:
    """One report file together with the source roots it declared."""

    path: Path
    result: CoverageResult
    source_roots: frozenset[str] = frozenset()


@dataclass(slots=True)
class Aggregate:
    result: CoverageResult
    source_roots: set[str] = field(default_factory=set)


def resolve_source_roots(roots: set[str], report_paths: Sequence[Path]) -> set[str]:
    """Replace the ``.`` marker with the directory of each report file."""
    if CURRENT_DIR not in roots:
        return set(roots)
    out = set(roots) - {CURRENT_DIR}
    for path in report_paths:
        parent = Path(path).parent
        if parent.is_dir():
            out.add(str(parent))
    return out


def aggregate(reports: Sequence[ParsedReport], *, owner: str | None = None) -> Aggregate:
    """Merge *reports* into one result and the union of their source roots.

    Raises :class:`NoCoverageDataError` when *reports* is empty; callers reject
    such builds before getting here.
    """
    if not reports:
        msg = "no coverage reports to aggregate"
        raise NoCoverageDataError(msg)

    merged = CoverageResult.merged(report.result for report in reports)
    merged.owner = owner
    roots: set[str] = set()
    for report in reports:
        roots.update(report.source_roots)
    roots = resolve_source_roots(roots, [report.path for report in reports])
    logger.debug("aggregated %d report(s), %d source root(s)", len(reports), len(roots))
    return Aggregate(result=merged, source_roots=roots)


__all__ = ["CURRENT_DIR", "Aggregate", "ParsedReport", "aggregate", "resolve_source_roots"]
