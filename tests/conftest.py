from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ratchetcov.model.result import CoverageResult

# line number -> hits, or (hits, condition-coverage) for a branch line
LinesMap = Mapping[int, int | tuple[int, str]]
ClassesMap = Mapping[str, LinesMap]


def covered_lines(covered: int, total: int) -> dict[int, int]:
    """Return a lines mapping of *total* lines whose first *covered* lines were hit."""
    return {number: int(number <= covered) for number in range(1, total + 1)}


def _line_xml(number: int, entry: int | tuple[int, str]) -> str:
    if isinstance(entry, tuple):
        hits, condition = entry
        return f'<line number="{number}" hits="{hits}" branch="true" condition-coverage="{condition}"/>'
    return f'<line number="{number}" hits="{entry}"/>'


@pytest.fixture
def hit_lines() -> Callable[[int, int], dict[int, int]]:
    return covered_lines


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CLI runner for invoking the command-line interface."""
    return CliRunner()


@pytest.fixture
def coverage_xml_content() -> Callable[..., str]:
    def build(
        mapping: ClassesMap,
        *,
        sources: list[str] | None = None,
        package: str = "pkg",
        methods: Mapping[str, Mapping[str, LinesMap]] | None = None,
    ) -> str:
        classes: list[str] = []
        for file, lines in mapping.items():
            lines_xml = "".join(_line_xml(ln, entry) for ln, entry in lines.items())
            methods_xml = ""
            for name, method_lines in (methods or {}).get(file, {}).items():
                body = "".join(_line_xml(ln, entry) for ln, entry in method_lines.items())
                methods_xml += f'<method name="{name}" signature="()V"><lines>{body}</lines></method>'
            classes.append(
                f'<class name="{Path(file).stem}" filename="{file}">'
                f"<methods>{methods_xml}</methods><lines>{lines_xml}</lines></class>"
            )
        sources_xml = "".join(f"<source>{s}</source>" for s in sources or [])
        return (
            "<coverage>"
            f"<sources>{sources_xml}</sources>"
            f'<packages><package name="{package}"><classes>{"".join(classes)}</classes></package></packages>'
            "</coverage>"
        )

    return build


@pytest.fixture
def coverage_xml_file(
    tmp_path: Path,
    coverage_xml_content: Callable[..., str],
) -> Callable[..., Path]:
    def write(mapping: ClassesMap, *, filename: str = "coverage.xml", **kwargs: object) -> Path:
        xml_file = tmp_path / filename
        xml_file.parent.mkdir(parents=True, exist_ok=True)
        xml_file.write_text(coverage_xml_content(mapping, **kwargs), encoding="utf-8")
        return xml_file

    return write


@pytest.fixture
def make_result(tmp_path: Path, coverage_xml_file: Callable[..., Path]) -> Callable[..., CoverageResult]:
    """Build a :class:`CoverageResult` by parsing generated Cobertura XML."""
    from ratchetcov.inputs import cobertura

    counter = iter(range(1_000_000))

    def build(mapping: ClassesMap, **kwargs: object) -> CoverageResult:
        path = coverage_xml_file(mapping, filename=f"results/r{next(counter)}.xml", **kwargs)
        return cobertura.parse(path)

    return build
