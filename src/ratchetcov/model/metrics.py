from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class Metric(StrEnum):
    """Coverage dimensions, declared in display order."""

    PACKAGES = "packages"
    FILES = "files"
    CLASSES = "classes"
    METHODS = "methods"
    LINES = "lines"
    CONDITIONALS = "conditionals"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def position(self) -> int:
        return CATALOG.index(self)

    @classmethod
    def parse(cls, name: str) -> Metric:
        """Return the metric for *name* (case-insensitive, singular forms accepted)."""
        key = name.strip().lower()
        try:
            return _ALIASES[key]
        except KeyError:
            msg = f"unknown coverage metric: {name!r}"
            raise ValueError(msg) from None


_LABELS: dict[Metric, str] = {
    Metric.PACKAGES: "Packages",
    Metric.FILES: "Files",
    Metric.CLASSES: "Classes",
    Metric.METHODS: "Methods",
    Metric.LINES: "Lines",
    Metric.CONDITIONALS: "Conditionals",
}

CATALOG: tuple[Metric, ...] = tuple(Metric)

_ALIASES: dict[str, Metric] = {
    **{m.value: m for m in Metric},
    **{m.value.removesuffix("es" if m is Metric.CLASSES else "s"): m for m in Metric},
    "branch": Metric.CONDITIONALS,
    "branches": Metric.CONDITIONALS,
}


def in_catalog_order(metrics: Iterable[Metric]) -> list[Metric]:
    """Return the distinct *metrics* sorted by catalog position."""
    return sorted(set(metrics), key=CATALOG.index)


__all__ = ["CATALOG", "Metric", "in_catalog_order"]
