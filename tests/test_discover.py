from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ratchetcov.errors import InvalidCoverageXMLError, ReportTransportError
from ratchetcov.inputs.discover import (
    check_report,
    copy_reports,
    discover_reports,
    sanitize_filename,
    stored_name,
)


def test_discover_reports_default_pattern(coverage_xml_file: Callable[..., Path], tmp_path: Path) -> None:
    b = coverage_xml_file({"b.py": {1: 1}}, filename="mod_b/coverage.xml")
    a = coverage_xml_file({"a.py": {1: 1}}, filename="mod_a/coverage.xml")
    coverage_xml_file({"c.py": {1: 1}}, filename="mod_c/other.xml")
    assert discover_reports(tmp_path) == (a, b)


def test_discover_reports_comma_separated_patterns_dedupe(
    coverage_xml_file: Callable[..., Path],
    tmp_path: Path,
) -> None:
    a = coverage_xml_file({"a.py": {1: 1}}, filename="a/coverage.xml")
    other = coverage_xml_file({"c.py": {1: 1}}, filename="c/other.xml")
    found = discover_reports(tmp_path, "**/other.xml, **/*.xml")
    assert found == (other, a)


def test_discover_reports_empty_match(tmp_path: Path) -> None:
    assert discover_reports(tmp_path, "**/coverage.xml") == ()


def test_discover_reports_rejects_blank_pattern(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="non-empty"):
        discover_reports(tmp_path, " , ")


def test_discover_reports_rejects_absolute_pattern(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="relative to the workspace"):
        discover_reports(tmp_path, f"**/*.xml, {tmp_path / 'coverage.xml'}")


def test_discover_reports_validates_matches(tmp_path: Path) -> None:
    (tmp_path / "coverage.xml").write_text("<html/>", encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="is not a cobertura coverage report"):
        discover_reports(tmp_path)


def test_check_report_rejects_non_xml(tmp_path: Path) -> None:
    p = tmp_path / "coverage.xml"
    p.write_text("not xml at all", encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="is not an XML file"):
        check_report(p)


def test_check_report_rejects_empty_file(tmp_path: Path) -> None:
    p = tmp_path / "coverage.xml"
    p.write_text("", encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="is not an XML file"):
        check_report(p)


def test_check_report_rejects_entity_declarations(tmp_path: Path) -> None:
    p = tmp_path / "coverage.xml"
    p.write_text('<!DOCTYPE coverage [<!ENTITY x "y">]>\n<coverage>&x;</coverage>\n', encoding="utf-8")
    with pytest.raises(InvalidCoverageXMLError, match="forbidden XML constructs"):
        check_report(p)


def test_check_report_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ReportTransportError, match="unable to read"):
        check_report(tmp_path / "missing.xml")


def test_copy_reports_names_in_order(coverage_xml_file: Callable[..., Path], tmp_path: Path) -> None:
    first = coverage_xml_file({"a.py": {1: 1}}, filename="x/coverage.xml")
    second = coverage_xml_file({"b.py": {1: 0}}, filename="y/coverage.xml")
    build_dir = tmp_path / "build" / "1"

    stored = copy_reports([first, second], build_dir)

    assert stored == (build_dir / "coverage.xml", build_dir / "coverage1.xml")
    assert stored[1].read_text(encoding="utf-8") == second.read_text(encoding="utf-8")
    assert [stored_name(i) for i in range(3)] == ["coverage.xml", "coverage1.xml", "coverage2.xml"]


def test_copy_reports_wraps_os_error(tmp_path: Path) -> None:
    with pytest.raises(ReportTransportError, match="Unable to copy coverage from") as info:
        copy_reports([tmp_path / "missing.xml"], tmp_path / "build")
    assert isinstance(info.value.__cause__, OSError)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("../aaa/bbb", "__aaa_bbb"),
        ("aaa/../bbb", "aaa___bbb"),
        ("/aaa/bbb", "_aaa_bbb"),
        ("C:\\aaa\\bbb", "C__aaa_bbb"),
        ("plain.py", "plain.py"),
    ],
)
def test_sanitize_filename(name: str, expected: str) -> None:
    assert sanitize_filename(name) == expected
