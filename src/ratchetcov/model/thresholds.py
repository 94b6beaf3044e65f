from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING

from ratchetcov.model import codec
from ratchetcov.model.metrics import Metric, in_catalog_order

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

_TARGET_PATTERN = re.compile(r"^[a-zA-Z_-]+=")
_FULL_PERCENT = 100.0

# 0 means no limit
DEFAULT_MAX_HISTORY = 0


class TierName(StrEnum):
    """Threshold severities, from aspirational to hard gate."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    FAILING = "failing"


class ThresholdSet:
    """Stored targets for one tier; a missing metric imposes no requirement."""

    __slots__ = ("_targets",)

    def __init__(self, targets: Mapping[Metric, int] | None = None) -> None:
        self._targets: dict[Metric, int] = {}
        for metric, stored in (targets or {}).items():
            self.set(metric, stored)

    def clear(self) -> None:
        self._targets.clear()

    def set(self, metric: Metric, stored: int) -> None:
        if isinstance(stored, bool) or not isinstance(stored, int) or stored < 0:
            msg = f"stored target for {metric} must be a non-negative integer: {stored!r}"
            raise ValueError(msg)
        self._targets[Metric(metric)] = stored

    def get(self, metric: Metric) -> int | None:
        return self._targets.get(metric)

    def metrics(self) -> list[Metric]:
        return in_catalog_order(self._targets)

    def copy(self) -> ThresholdSet:
        return ThresholdSet(self._targets)

    def items(self) -> Iterator[tuple[Metric, int]]:
        for metric in self.metrics():
            yield metric, self._targets[metric]

    def to_percentages(self) -> list[tuple[Metric, float]]:
        """Return ``(metric, percent)`` pairs with two-decimal percentages."""
        return [(metric, codec.to_percent(stored)) for metric, stored in self.items()]

    @classmethod
    def from_percentages(cls, pairs: Iterable[tuple[Metric | str, float]]) -> ThresholdSet:
        targets = cls()
        for metric, percent in pairs:
            key = metric if isinstance(metric, Metric) else Metric.parse(metric)
            targets.set(key, codec.from_percent(_check_percent(float(percent), str(metric))))
        return targets

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, metric: object) -> bool:
        return metric in self._targets

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ThresholdSet):
            return NotImplemented
        return self._targets == other._targets

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        inner = ", ".join(f"{m}={pct:.2f}%" for m, pct in self.to_percentages())
        return f"ThresholdSet({inner})"


@dataclass(slots=True)
class ThresholdConfig:
    """The three tiers of one job, plus the history retention it carries."""

    healthy: ThresholdSet = field(default_factory=ThresholdSet)
    unhealthy: ThresholdSet = field(default_factory=ThresholdSet)
    failing: ThresholdSet = field(default_factory=ThresholdSet)
    max_history: int = DEFAULT_MAX_HISTORY
    version: int = 0

    def tier(self, name: TierName) -> ThresholdSet:
        return getattr(self, TierName(name).value)

    def copy(self) -> ThresholdConfig:
        return replace(
            self,
            healthy=self.healthy.copy(),
            unhealthy=self.unhealthy.copy(),
            failing=self.failing.copy(),
        )

    def same_targets(self, other: ThresholdConfig) -> bool:
        return all(self.tier(name) == other.tier(name) for name in TierName)


def default_config() -> ThresholdConfig:
    """Return the starting targets offered to a new job."""
    return ThresholdConfig(
        healthy=ThresholdSet.from_percentages([
            (Metric.METHODS, 80.0),
            (Metric.LINES, 80.0),
            (Metric.CONDITIONALS, 70.0),
        ]),
    )


def parse_targets(expression: str) -> ThresholdSet:
    """Parse a target expression like ``'lines=80,conditionals=70.5%'``."""
    if not expression or not expression.strip():
        msg = "target expression must be non-empty"
        raise ValueError(msg)

    seen: dict[Metric, float] = {}
    tokens = [token.strip() for token in re.split(r"[,\s]+", expression) if token.strip()]
    for token in tokens:
        if "=" not in token or not _TARGET_PATTERN.match(token):
            msg = f"invalid target token: {token!r}"
            raise ValueError(msg)
        key, raw_value = token.split("=", 1)
        metric = Metric.parse(key)
        if metric in seen:
            msg = f"duplicate target for {metric} in {token!r}"
            raise ValueError(msg)
        value = raw_value.strip().rstrip("%")
        try:
            percent = float(value)
        except ValueError as exc:
            msg = f"invalid percentage value in {token!r}: {value!r}"
            raise ValueError(msg) from exc
        seen[metric] = _check_percent(percent, token)

    return ThresholdSet.from_percentages(seen.items())


def _check_percent(percent: float, where: str) -> float:
    if not 0 <= percent <= _FULL_PERCENT:
        msg = f"percentage out of range in {where!r}: {percent}"
        raise ValueError(msg)
    return percent


__all__ = [
    "DEFAULT_MAX_HISTORY",
    "ThresholdConfig",
    "ThresholdSet",
    "TierName",
    "default_config",
    "parse_targets",
]
