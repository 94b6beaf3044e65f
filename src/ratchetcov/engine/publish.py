"""Publish orchestration: aggregate, gate, ratchet, decide.

``evaluate`` is the pure decision step over already parsed reports. ``publish``
wraps it with report discovery, transport, parsing, source painting and the
threshold store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING

from ratchetcov._meta import logger
from ratchetcov.engine.aggregate import ParsedReport, aggregate
from ratchetcov.engine.evaluate import failing_metrics
from ratchetcov.engine.ratchet import ratchet
from ratchetcov.engine.tiers import GATES, RATCHETS
from ratchetcov.errors import (
    BuildAbortedError,
    CoverageXMLNotFoundError,
    NoReportsError,
    ReportTransportError,
)
from ratchetcov.inputs import cobertura
from ratchetcov.inputs.discover import DEFAULT_PATTERN, check_report, copy_reports, discover_reports
from ratchetcov.model.policy import BuildStatus, Policy
from ratchetcov.render.painter import DEFAULT_SOURCE_ENCODING, check_encoding, paint_sources

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from pathlib import Path

    from ratchetcov.config import ThresholdStore
    from ratchetcov.engine.evaluate import MetricComparison
    from ratchetcov.engine.ratchet import RatchetChange
    from ratchetcov.model.result import CoverageResult
    from ratchetcov.model.thresholds import ThresholdConfig

    Painter = Callable[..., object]

NO_REPORTS_MESSAGE = "No coverage results were found (no reports matched)."


class OutcomeStatus(StrEnum):
    PASS = "pass"
    PASS_WITH_RATCHET = "pass-with-ratchet"
    UNSTABLE = "unstable"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Final coverage verdict for one build.

    ``config`` holds the thresholds to use from now on: a ratcheted copy when
    ``changes`` is non-empty, otherwise the configuration that was evaluated.
    """

    status: OutcomeStatus
    reason: str | None = None
    failure: str | None = None
    diagnostics: tuple[str, ...] = ()
    failures: tuple[MetricComparison, ...] = ()
    changes: tuple[RatchetChange, ...] = ()
    config: ThresholdConfig | None = None
    result: CoverageResult | None = None
    source_roots: frozenset[str] = frozenset()
    skipped: bool = False

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @property
    def ratcheted(self) -> bool:
        return bool(self.changes)


@dataclass(slots=True)
class _Diagnostics:
    lines: list[str] = field(default_factory=list)

    def emit(self, line: str, level: int = logging.INFO) -> None:
        logger.log(level, line)
        self.lines.append(line)


def _skip_threshold(policy: Policy) -> BuildStatus:
    return BuildStatus.SUCCESS if policy.only_stable_input_builds else BuildStatus.UNSTABLE


def _skipped_for_status(policy: Policy, build_status: BuildStatus, config: ThresholdConfig) -> Outcome | None:
    threshold = _skip_threshold(policy)
    if not build_status.is_worse_than(threshold):
        return None
    diag = _Diagnostics()
    diag.emit(f"Skipping coverage report as build was not {threshold} or better ...")
    return Outcome(status=OutcomeStatus.PASS, diagnostics=tuple(diag.lines), config=config, skipped=True)


def evaluate(
    reports: Sequence[ParsedReport],
    config: ThresholdConfig,
    policy: Policy | None = None,
    *,
    build_status: BuildStatus = BuildStatus.SUCCESS,
    owner: str | None = None,
) -> Outcome:
    """Decide the coverage outcome of one build.

    *config* is never mutated; ratcheted targets are returned on the outcome.
    """
    policy = policy or Policy()
    skipped = _skipped_for_status(policy, build_status, config)
    if skipped is not None:
        return skipped

    diag = _Diagnostics()
    if not reports:
        diag.emit(NO_REPORTS_MESSAGE, logging.WARNING)
        if policy.fail_if_no_reports:
            error = NoReportsError(NO_REPORTS_MESSAGE)
            return Outcome(
                status=OutcomeStatus.FAILED,
                reason=str(error),
                failure=error.kind,
                diagnostics=tuple(diag.lines),
                config=config,
            )
        diag.emit("Skipped coverage reports.")
        return Outcome(status=OutcomeStatus.PASS, diagnostics=tuple(diag.lines), config=config, skipped=True)

    agg = aggregate(reports, owner=owner)
    result = agg.result
    working = config.copy()
    status = OutcomeStatus.UNSTABLE if build_status is BuildStatus.UNSTABLE else OutcomeStatus.PASS
    failures: list[MetricComparison] = []

    def finish(**kwargs: object) -> Outcome:
        return Outcome(
            diagnostics=tuple(diag.lines),
            failures=tuple(failures),
            result=result,
            source_roots=frozenset(agg.source_roots),
            **kwargs,  # type: ignore[arg-type]
        )

    try:
        for gate in GATES:
            if not gate.enabled(policy):
                continue
            failing = failing_metrics(working.tier(gate.tier), result)
            if not failing:
                continue
            diag.emit(gate.header, logging.WARNING)
            for cmp in failing:
                diag.emit(
                    f"    {cmp.metric.value}'s {gate.quality} is {cmp.observed_percent:.2f}%"
                    f" and set minimum {gate.quality} is {cmp.required_percent:.2f}%.",
                    logging.WARNING,
                )
            failures.extend(failing)
            if gate.fatal(policy):
                raise gate.error(gate.abort_message)
            diag.emit("Setting build to unstable.", logging.WARNING)
            status = OutcomeStatus.UNSTABLE
    except BuildAbortedError as exc:
        diag.emit(str(exc), logging.ERROR)
        return finish(status=OutcomeStatus.FAILED, reason=str(exc), failure=exc.kind, config=config)

    changes: list[RatchetChange] = []
    if status is OutcomeStatus.PASS:
        for step in RATCHETS:
            if not step.enabled(policy):
                continue
            for change in ratchet(result, working, step):
                diag.emit(change.describe())
                changes.append(change)

    if changes:
        return finish(status=OutcomeStatus.PASS_WITH_RATCHET, changes=tuple(changes), config=working)
    return finish(status=status, config=config)


def parse_reports(paths: Sequence[Path], *, origins: Sequence[Path] | None = None) -> list[ParsedReport]:
    """Parse each report on its own; *origins* are the files' workspace locations."""
    origins = origins or paths
    parsed: list[ParsedReport] = []
    for path, origin in zip(paths, origins, strict=True):
        roots: set[str] = set()
        try:
            result = cobertura.parse(path, None, roots)
        except OSError as exc:
            msg = f"Unable to parse {path}"
            raise ReportTransportError(msg) from exc
        parsed.append(ParsedReport(path=origin, result=result, source_roots=frozenset(roots)))
    return parsed


def _paint(outcome: Outcome, painter: Painter, paint_dir: Path, encoding: str) -> None:
    if outcome.result is None:
        return
    try:
        painter(outcome.result, outcome.source_roots, paint_dir, encoding=encoding)
    except OSError as exc:
        logger.warning("unable to paint sources into %s: %s", paint_dir, exc)


def publish(
    workspace: Path,
    store: ThresholdStore,
    *,
    pattern: str | None = None,
    reports: Sequence[Path] | None = None,
    build_dir: Path | None = None,
    policy: Policy | None = None,
    policy_overrides: Mapping[str, bool] | None = None,
    build_status: BuildStatus = BuildStatus.SUCCESS,
    owner: str | None = None,
    paint_dir: Path | None = None,
    painter: Painter = paint_sources,
    source_encoding: str | None = None,
    dry_run: bool = False,
) -> Outcome:
    """Run the full coverage step of a build and persist any ratchet.

    Reports are either given explicitly or discovered under *workspace* with
    *pattern*. *policy_overrides* replace individual switches of the stored
    policy. Sources are painted with *source_encoding*, falling back to the
    stored encoding and then UTF-8. Malformed reports and transport failures
    raise; every other verdict is returned as an :class:`Outcome`.
    """
    with store.transaction() as settings:
        encoding = check_encoding(source_encoding or settings.source_encoding or DEFAULT_SOURCE_ENCODING)
        policy = policy or settings.policy
        if policy_overrides:
            policy = replace(policy, **policy_overrides)
        skipped = _skipped_for_status(policy, build_status, settings.thresholds)
        if skipped is not None:
            return skipped

        if reports is None:
            pattern = pattern or settings.pattern or DEFAULT_PATTERN
            logger.info("Publishing coverage report (pattern %r under %s)...", pattern, workspace)
            found = discover_reports(workspace, pattern)
        else:
            found = tuple(reports)
            for path in found:
                if not path.is_file():
                    msg = f"coverage report not found: {path}"
                    raise CoverageXMLNotFoundError(msg)
                check_report(path)

        stored = copy_reports(found, build_dir) if build_dir is not None and found else found
        parsed = parse_reports(stored, origins=found)

        outcome = evaluate(parsed, settings.thresholds, policy, build_status=build_status, owner=owner)
        if paint_dir is not None:
            _paint(outcome, painter, paint_dir, encoding)

        if outcome.ratcheted and outcome.config is not None:
            if dry_run:
                logger.info("dry run: ratcheted targets not saved")
            else:
                committed = store.commit(outcome.config, expected_version=settings.thresholds.version)
                outcome = replace(outcome, config=committed)
        return outcome


__all__ = [
    "NO_REPORTS_MESSAGE",
    "Outcome",
    "OutcomeStatus",
    "evaluate",
    "parse_reports",
    "publish",
]
