"""One-way raising of the unhealthy and failing tiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ratchetcov.engine.evaluate import all_metrics, required_percent
from ratchetcov.model import codec
from ratchetcov.model.thresholds import TierName

if TYPE_CHECKING:
    from ratchetcov.engine.tiers import Ratchet
    from ratchetcov.model.metrics import Metric
    from ratchetcov.model.result import CoverageResult
    from ratchetcov.model.thresholds import ThresholdConfig


@dataclass(frozen=True, slots=True)
class RatchetChange:
    metric: Metric
    tier: TierName
    quality: str
    old_points: int
    new_points: int

    def describe(self) -> str:
        return (
            f"    {self.metric.value}: new {self.quality} minimum is {self.new_points:.2f}%"
            f" (was {self.old_points:.2f}%)"
        )


def ratchet(result: CoverageResult, config: ThresholdConfig, step: Ratchet) -> list[RatchetChange]:
    """Raise ``config``'s ``step.target`` tier in place and return what changed.

    Observed and current targets are compared in whole percent-points; a target
    is only ever raised, never lowered.
    """
    target = config.tier(step.target)
    changes: list[RatchetChange] = []
    for cmp in all_metrics(config.tier(TierName.HEALTHY), result):
        new_points = codec.percent_points(cmp.observed)
        old_points = codec.percent_points(required_percent(target, cmp.metric) or 0.0)
        if new_points <= old_points:
            continue
        target.set(cmp.metric, codec.from_percent_points(new_points))
        change = RatchetChange(
            metric=cmp.metric,
            tier=step.target,
            quality=step.quality,
            old_points=old_points,
            new_points=new_points,
        )
        changes.append(change)
    return changes


__all__ = ["RatchetChange", "ratchet"]
