"""Compare an aggregate result against one tier's targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ratchetcov.model import codec

if TYPE_CHECKING:
    from ratchetcov.model.metrics import Metric
    from ratchetcov.model.result import CoverageResult
    from ratchetcov.model.thresholds import ThresholdSet


@dataclass(frozen=True, slots=True)
class MetricComparison:
    """Observed vs. required coverage fraction for one metric."""

    metric: Metric
    observed: float
    required: float

    @property
    def failed(self) -> bool:
        return self.observed < self.required

    @property
    def observed_percent(self) -> float:
        return _two_decimal_percent(self.observed)

    @property
    def required_percent(self) -> float:
        return _two_decimal_percent(self.required)


def _two_decimal_percent(fraction: float) -> float:
    return codec.round_to_two_decimal_percent(fraction * 10_000)


def observed_percent(result: CoverageResult, metric: Metric) -> float:
    """Observed fraction of *metric*; a metric with no units is fully covered."""
    return result.observed(metric)


def required_percent(targets: ThresholdSet, metric: Metric) -> float | None:
    stored = targets.get(metric)
    return None if stored is None else codec.decode(stored)


def compare(targets: ThresholdSet, result: CoverageResult) -> list[MetricComparison]:
    """Comparisons for metrics present in both *result* and *targets*."""
    ratios = result.ratios()
    out: list[MetricComparison] = []
    for metric in result.metrics():
        required = required_percent(targets, metric)
        if required is None:
            continue
        out.append(MetricComparison(metric=metric, observed=ratios[metric].fraction, required=required))
    return out


def failing_metrics(targets: ThresholdSet, result: CoverageResult) -> list[MetricComparison]:
    """Metrics below their target, in catalog order."""
    return [cmp for cmp in compare(targets, result) if cmp.failed]


def all_metrics(targets: ThresholdSet, result: CoverageResult) -> list[MetricComparison]:
    """Every metric present in *result*; unset targets compare as 0."""
    ratios = result.ratios()
    return [
        MetricComparison(
            metric=metric,
            observed=ratios[metric].fraction,
            required=required_percent(targets, metric) or 0.0,
        )
        for metric in result.metrics()
    ]


__all__ = [
    "MetricComparison",
    "all_metrics",
    "compare",
    "failing_metrics",
    "observed_percent",
    "required_percent",
]
