"""Hierarchical coverage result: packages > files > classes > methods > lines.

Nodes merge over matching identities (package name, file name, class name,
method name plus signature, line number). Line data merges with ``max`` so the
merge is commutative, associative, and idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ratchetcov.model.metrics import CATALOG, Metric

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


@dataclass(frozen=True, slots=True)
class Ratio:
    covered: int = 0
    total: int = 0

    @property
    def fraction(self) -> float:
        """Observed fraction; nothing to cover counts as fully covered."""
        return 1.0 if self.total == 0 else self.covered / self.total

    def __add__(self, other: Ratio) -> Ratio:
        return Ratio(self.covered + other.covered, self.total + other.total)


@dataclass(frozen=True, slots=True)
class LineHit:
    hits: int = 0
    branches_covered: int = 0
    branches_total: int = 0

    def merged(self, other: LineHit) -> LineHit:
        return LineHit(
            hits=max(self.hits, other.hits),
            branches_covered=max(self.branches_covered, other.branches_covered),
            branches_total=max(self.branches_total, other.branches_total),
        )


def _merge_lines(into: dict[int, LineHit], lines: Mapping[int, LineHit]) -> None:
    for number, hit in lines.items():
        current = into.get(number)
        into[number] = hit if current is None else current.merged(hit)


def _any_hit(lines: Mapping[int, LineHit]) -> bool:
    return any(hit.hits > 0 for hit in lines.values())


@dataclass(slots=True)
class MethodCoverage:
    name: str
    signature: str = ""
    lines: dict[int, LineHit] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.name}{self.signature}"

    def merge(self, other: MethodCoverage) -> None:
        _merge_lines(self.lines, other.lines)


@dataclass(slots=True)
class ClassCoverage:
    name: str
    lines: dict[int, LineHit] = field(default_factory=dict)
    methods: dict[str, MethodCoverage] = field(default_factory=dict)

    def method(self, name: str, signature: str = "") -> MethodCoverage:
        candidate = MethodCoverage(name=name, signature=signature)
        return self.methods.setdefault(candidate.key, candidate)

    def all_lines(self) -> dict[int, LineHit]:
        """Class lines, falling back to the union of method lines when absent."""
        if self.lines:
            return self.lines
        out: dict[int, LineHit] = {}
        for method in self.methods.values():
            _merge_lines(out, method.lines)
        return out

    def merge(self, other: ClassCoverage) -> None:
        _merge_lines(self.lines, other.lines)
        for key, method in other.methods.items():
            mine = self.methods.get(key)
            if mine is None:
                mine = self.methods[key] = MethodCoverage(name=method.name, signature=method.signature)
            mine.merge(method)


@dataclass(slots=True)
class FileCoverage:
    path: str
    classes: dict[str, ClassCoverage] = field(default_factory=dict)

    def klass(self, name: str) -> ClassCoverage:
        return self.classes.setdefault(name, ClassCoverage(name=name))

    def line_hits(self) -> dict[int, LineHit]:
        out: dict[int, LineHit] = {}
        for cls in self.classes.values():
            _merge_lines(out, cls.all_lines())
        return out

    def merge(self, other: FileCoverage) -> None:
        for name, cls in other.classes.items():
            self.klass(name).merge(cls)


@dataclass(slots=True)
class PackageCoverage:
    name: str
    files: dict[str, FileCoverage] = field(default_factory=dict)

    def file(self, path: str) -> FileCoverage:
        return self.files.setdefault(path, FileCoverage(path=path))

    def merge(self, other: PackageCoverage) -> None:
        for path, fc in other.files.items():
            self.file(path).merge(fc)


@dataclass(slots=True)
class CoverageResult:
    """Coverage tree for one build, possibly merged from several reports."""

    packages: dict[str, PackageCoverage] = field(default_factory=dict)
    owner: str | None = None

    def package(self, name: str) -> PackageCoverage:
        return self.packages.setdefault(name, PackageCoverage(name=name))

    def merge(self, other: CoverageResult) -> CoverageResult:
        """Fold *other* into this result and return ``self``."""
        for name, pkg in other.packages.items():
            self.package(name).merge(pkg)
        return self

    @classmethod
    def merged(cls, results: Iterable[CoverageResult]) -> CoverageResult:
        out = cls()
        for result in results:
            out.merge(result)
        return out

    def iter_files(self) -> Iterator[FileCoverage]:
        for pkg in self.packages.values():
            yield from pkg.files.values()

    def ratios(self) -> dict[Metric, Ratio]:
        """Return ``{metric: Ratio}`` for every metric, in catalog order."""
        counts = dict.fromkeys(CATALOG, Ratio())

        def bump(metric: Metric, covered: int, total: int = 1) -> None:
            counts[metric] = counts[metric] + Ratio(covered, total)

        for pkg in self.packages.values():
            pkg_hit = False
            pkg_counted = False
            for fc in pkg.files.values():
                file_lines = fc.line_hits()
                if not file_lines and not fc.classes:
                    continue
                file_hit = _any_hit(file_lines)
                pkg_counted = True
                pkg_hit = pkg_hit or file_hit
                bump(Metric.FILES, int(file_hit))
                for cls in fc.classes.values():
                    bump(Metric.CLASSES, int(_any_hit(cls.all_lines())))
                    for method in cls.methods.values():
                        bump(Metric.METHODS, int(_any_hit(method.lines)))
                for hit in file_lines.values():
                    bump(Metric.LINES, int(hit.hits > 0))
                    if hit.branches_total:
                        bump(Metric.CONDITIONALS, hit.branches_covered, hit.branches_total)
            if pkg_counted:
                bump(Metric.PACKAGES, int(pkg_hit))
        return counts

    def ratio(self, metric: Metric) -> Ratio:
        return self.ratios()[metric]

    def observed(self, metric: Metric) -> float:
        return self.ratio(metric).fraction

    def metrics(self) -> list[Metric]:
        """Metrics with at least one measurable unit, in catalog order."""
        return [metric for metric, ratio in self.ratios().items() if ratio.total > 0]

    def painted_sources(self) -> dict[str, dict[int, LineHit]]:
        """Return ``{file: {line: LineHit}}`` for source annotation."""
        out: dict[str, dict[int, LineHit]] = {}
        for fc in self.iter_files():
            _merge_lines(out.setdefault(fc.path, {}), fc.line_hits())
        return out


__all__ = [
    "ClassCoverage",
    "CoverageResult",
    "FileCoverage",
    "LineHit",
    "MethodCoverage",
    "PackageCoverage",
    "Ratio",
]
