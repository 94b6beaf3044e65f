from __future__ import annotations

from collections.abc import Callable

from ratchetcov.model.metrics import Metric
from ratchetcov.model.result import CoverageResult, LineHit, Ratio


def _snapshot(result: CoverageResult) -> dict[Metric, Ratio]:
    return result.ratios()


def test_ratio_fraction_of_empty_metric_is_full() -> None:
    assert Ratio().fraction == 1.0
    assert Ratio(1, 4).fraction == 0.25
    assert Ratio(1, 2) + Ratio(2, 3) == Ratio(3, 5)


def test_line_hit_merge_takes_maximum() -> None:
    a = LineHit(hits=0, branches_covered=1, branches_total=2)
    b = LineHit(hits=3, branches_covered=0, branches_total=2)
    assert a.merged(b) == b.merged(a) == LineHit(hits=3, branches_covered=1, branches_total=2)


def test_ratios_count_each_level(make_result: Callable[..., CoverageResult]) -> None:
    result = make_result(
        {
            "a.py": {1: 1, 2: 0, 3: (1, "50% (1/2)")},
            "b.py": {1: 0},
        },
        methods={"a.py": {"run": {1: 1}, "stop": {2: 0}}},
    )
    ratios = result.ratios()
    assert ratios[Metric.PACKAGES] == Ratio(1, 1)
    assert ratios[Metric.FILES] == Ratio(1, 2)
    assert ratios[Metric.CLASSES] == Ratio(1, 2)
    assert ratios[Metric.METHODS] == Ratio(1, 2)
    assert ratios[Metric.LINES] == Ratio(2, 4)
    assert ratios[Metric.CONDITIONALS] == Ratio(1, 2)
    assert result.metrics() == list(Metric)


def test_zero_total_metrics_are_excluded(make_result: Callable[..., CoverageResult]) -> None:
    result = make_result({"a.py": {1: 1}})
    assert Metric.CONDITIONALS not in result.metrics()
    assert Metric.METHODS not in result.metrics()
    assert result.observed(Metric.CONDITIONALS) == 1.0


def test_merge_is_commutative(make_result: Callable[..., CoverageResult]) -> None:
    def first() -> CoverageResult:
        return make_result({"a.py": {1: 1, 2: 0}, "b.py": {1: (0, "0% (0/2)")}})

    def second() -> CoverageResult:
        return make_result({"a.py": {2: 4, 3: 0}, "c.py": {5: 1}}, package="other")

    left = CoverageResult.merged([first(), second()])
    right = CoverageResult.merged([second(), first()])
    assert _snapshot(left) == _snapshot(right)
    assert left.painted_sources() == right.painted_sources()


def test_merge_matches_lines_by_number(make_result: Callable[..., CoverageResult]) -> None:
    merged = CoverageResult.merged([
        make_result({"a.py": {1: 0, 2: 0}}),
        make_result({"a.py": {2: 1}}),
    ])
    assert merged.ratio(Metric.LINES) == Ratio(1, 2)
    assert merged.ratio(Metric.FILES) == Ratio(1, 1)


def test_merge_is_idempotent(make_result: Callable[..., CoverageResult]) -> None:
    result = make_result({"a.py": {1: 1, 2: 0, 3: (1, "50% (1/2)")}})
    before = _snapshot(result)
    result.merge(make_result({"a.py": {1: 1, 2: 0, 3: (1, "50% (1/2)")}}))
    assert _snapshot(result) == before


def test_empty_report_contributes_nothing(make_result: Callable[..., CoverageResult]) -> None:
    counted = make_result({"a.py": {1: 1}, "b.py": {1: 0}})
    empty = make_result({})
    assert empty.ratio(Metric.CLASSES) == Ratio(0, 0)

    merged = CoverageResult.merged([counted, empty])
    assert merged.ratio(Metric.CLASSES) == counted.ratio(Metric.CLASSES) == Ratio(1, 2)
    assert merged.ratio(Metric.PACKAGES) == Ratio(1, 1)


def test_class_lines_fall_back_to_method_lines(make_result: Callable[..., CoverageResult]) -> None:
    result = make_result({"a.py": {}}, methods={"a.py": {"run": {7: 1}}})
    assert result.ratio(Metric.LINES) == Ratio(1, 1)
    assert result.painted_sources() == {"a.py": {7: LineHit(hits=1)}}
