from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ratchetcov.errors import InvalidCoverageXMLError
from ratchetcov.inputs import cobertura
from ratchetcov.model.metrics import Metric
from ratchetcov.model.result import CoverageResult, Ratio


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("50% (1/2)", (1, 2)),
        ("(3/4)", (3, 4)),
        ("0/2", (0, 2)),
        ("", None),
        ("n/a", None),
    ],
)
def test_parse_condition_coverage(text: str, expected: tuple[int, int] | None) -> None:
    assert cobertura.parse_condition_coverage(text) == expected


def test_read_root_rejects_non_coverage_root(tmp_path: Path) -> None:
    p = tmp_path / "coverage.xml"
    p.write_text("<notcoverage />\n", encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="unexpected root tag"):
        cobertura.read_root(p)


def test_read_root_names_file_on_parse_error(tmp_path: Path) -> None:
    p = tmp_path / "broken.xml"
    p.write_text("<coverage><packages>", encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="broken.xml"):
        cobertura.read_root(p)


def test_parse_collects_sources(coverage_xml_file: Callable[..., Path]) -> None:
    path = coverage_xml_file({"a.py": {1: 1}}, sources=["/src", "."])
    roots: set[str] = set()
    result = cobertura.parse(path, None, roots)
    assert roots == {"/src", "."}
    assert result.ratio(Metric.LINES) == Ratio(1, 1)


def test_parse_folds_into_accumulator(coverage_xml_file: Callable[..., Path]) -> None:
    first = coverage_xml_file({"a.py": {1: 1}}, filename="one.xml")
    second = coverage_xml_file({"b.py": {1: 0}}, filename="two.xml")
    acc = CoverageResult()
    returned = cobertura.parse(second, cobertura.parse(first, acc))
    assert returned is acc
    assert acc.ratio(Metric.FILES) == Ratio(1, 2)


def test_parse_ignores_branch_attributes_on_plain_lines(tmp_path: Path) -> None:
    p = tmp_path / "coverage.xml"
    p.write_text(
        "<coverage><packages><package name='p'><classes>"
        "<class name='A' filename='a.py'><lines>"
        '<line number="1" hits="2" branch="false" condition-coverage="50% (1/2)"/>'
        '<line number="2" hits="0" branch="true" condition-coverage="0% (0/4)"/>'
        '<line number="x" hits="1"/>'
        "</lines></class>"
        "<class name='orphan'><lines><line number='1' hits='1'/></lines></class>"
        "</classes></package></packages></coverage>",
        encoding="utf-8",
    )
    result = cobertura.parse(p)
    assert result.ratio(Metric.LINES) == Ratio(1, 2)
    assert result.ratio(Metric.CONDITIONALS) == Ratio(0, 4)
    assert result.ratio(Metric.CLASSES) == Ratio(1, 1)


def test_duplicate_methods_merge(tmp_path: Path) -> None:
    p = tmp_path / "coverage.xml"
    p.write_text(
        "<coverage><packages><package name='p'><classes>"
        "<class name='A' filename='a.py'><methods>"
        "<method name='run' signature='()V'><lines><line number='1' hits='0'/></lines></method>"
        "<method name='run' signature='()V'><lines><line number='1' hits='3'/></lines></method>"
        "</methods><lines/></class>"
        "</classes></package></packages></coverage>",
        encoding="utf-8",
    )
    result = cobertura.parse(p)
    assert result.ratio(Metric.METHODS) == Ratio(1, 1)
    assert result.ratio(Metric.LINES) == Ratio(1, 1)


def test_read_root_rejects_entity_declarations(tmp_path: Path) -> None:
    p = tmp_path / "entities.xml"
    p.write_text('<!DOCTYPE coverage [<!ENTITY x "y">]>\n<coverage>&x;</coverage>\n', encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="entities.xml"):
        cobertura.read_root(p)
