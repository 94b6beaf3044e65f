"""Descriptors for the threshold gates and ratchets the orchestrator iterates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ratchetcov.errors import UnhealthyCoverageError, UnstableCoverageError
from ratchetcov.model.thresholds import TierName

if TYPE_CHECKING:
    from collections.abc import Callable

    from ratchetcov.errors import BuildAbortedError
    from ratchetcov.model.policy import Policy


@dataclass(frozen=True, slots=True)
class Gate:
    """A tier checked against the aggregate result.

    A failing fatal gate aborts the build with ``error``; a failing non-fatal
    gate downgrades the outcome to unstable.
    """

    tier: TierName
    quality: str
    header: str
    abort_message: str
    error: type[BuildAbortedError]
    enabled: Callable[[Policy], bool]
    fatal: Callable[[Policy], bool]


@dataclass(frozen=True, slots=True)
class Ratchet:
    """Raises ``target`` to the coverage observed for every metric in the result."""

    quality: str
    target: TierName
    enabled: Callable[[Policy], bool]


GATES: tuple[Gate, ...] = (
    Gate(
        tier=TierName.FAILING,
        quality="stability",
        header="Code coverage enforcement failed for the following metrics:",
        abort_message="Failing build due to unstable coverage.",
        error=UnstableCoverageError,
        enabled=lambda policy: True,
        fatal=lambda policy: policy.strict,
    ),
    Gate(
        tier=TierName.UNHEALTHY,
        quality="health",
        header="Unhealthy for the following metrics:",
        abort_message="Failing build because it is unhealthy.",
        error=UnhealthyCoverageError,
        enabled=lambda policy: policy.enforce_health,
        fatal=lambda policy: True,
    ),
)

RATCHETS: tuple[Ratchet, ...] = (
    Ratchet(quality="health", target=TierName.UNHEALTHY, enabled=lambda policy: policy.auto_ratchet_health),
    Ratchet(quality="stability", target=TierName.FAILING, enabled=lambda policy: policy.auto_ratchet_stability),
)


__all__ = ["GATES", "RATCHETS", "Gate", "Ratchet"]
