from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping


class BuildStatus(StrEnum):
    """Status of a build before its coverage is published."""

    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def is_worse_than(self, other: BuildStatus) -> bool:
        return self.severity > other.severity


_SEVERITY = {BuildStatus.SUCCESS: 0, BuildStatus.UNSTABLE: 1, BuildStatus.FAILURE: 2}


@dataclass(frozen=True, slots=True)
class Policy:
    """Caller-supplied switches for one evaluation.

    Fields
    ------
    only_stable_input_builds:
        Skip evaluation unless the incoming build succeeded; when clear, unstable
        builds are evaluated too.
    strict:
        Coverage below the failing tier aborts the build instead of marking it
        unstable.
    enforce_health:
        Coverage below the unhealthy tier aborts the build.
    auto_ratchet_health / auto_ratchet_stability:
        Raise the unhealthy / failing tier to the observed coverage after a
        clean pass.
    fail_if_no_reports:
        Abort when no report matched; otherwise skip with a warning.

    Only ``fail_if_no_reports`` is on by default.
    """

    only_stable_input_builds: bool = False
    strict: bool = False
    enforce_health: bool = False
    auto_ratchet_health: bool = False
    auto_ratchet_stability: bool = False
    fail_if_no_reports: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Policy:
        names = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - names)
        if unknown:
            msg = f"unknown policy option(s): {', '.join(unknown)}"
            raise ValueError(msg)
        values: dict[str, bool] = {}
        for key, value in data.items():
            if not isinstance(value, bool):
                msg = f"policy option {key!r} must be true or false, got {value!r}"
                raise ValueError(msg)
            values[key] = value
        return cls(**values)

    def to_mapping(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


__all__ = ["BuildStatus", "Policy"]
