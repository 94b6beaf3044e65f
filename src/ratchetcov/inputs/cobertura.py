"""Cobertura XML reader producing :class:`CoverageResult` trees."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException, ElementTree

from ratchetcov._meta import logger
from ratchetcov.errors import InvalidCoverageXMLError
from ratchetcov.model.result import CoverageResult, LineHit, MethodCoverage

if TYPE_CHECKING:
    from pathlib import Path
    from xml.etree.ElementTree import Element  # noqa: S405

_COND_RE = re.compile(r"\(?\s*(?P<covered>\d+)\s*/\s*(?P<total>\d+)\s*\)?")


def read_root(path: Path) -> Element:
    """Parse coverage XML and return the ``<coverage>`` root element."""
    try:
        root = ElementTree.parse(path).getroot()
    except ElementTree.ParseError as exc:
        msg = f"{path}: failed to parse coverage XML: {exc}"
        raise InvalidCoverageXMLError(msg) from exc
    except DefusedXmlException as exc:
        msg = f"{path}: refusing unsafe XML construct: {exc!r}"
        raise InvalidCoverageXMLError(msg) from exc
    tag = (root.tag or "").split("}")[-1]  # tolerate namespaces
    if tag.lower() != "coverage":
        msg = f"unexpected root tag {root.tag!r} in {path}"
        raise InvalidCoverageXMLError(msg)
    return root


def parse_condition_coverage(text: str) -> tuple[int, int] | None:
    """Parse ``'50% (1/2)'``, ``'(1/2)'`` or ``'1/2'`` into ``(covered, total)``."""
    if not text:
        return None
    m = _COND_RE.search(text)
    if not m:
        return None
    return int(m.group("covered")), int(m.group("total"))


def _parse_line(elem: Element) -> tuple[int, LineHit] | None:
    try:
        number = int(elem.get("number") or "")
        hits = int(elem.get("hits") or "0")
    except ValueError:
        return None
    covered = total = 0
    if (elem.get("branch") or "").lower() == "true":
        counts = parse_condition_coverage(elem.get("condition-coverage") or "")
        if counts is not None:
            covered, total = counts
    return number, LineHit(hits=hits, branches_covered=covered, branches_total=total)


def _collect_lines(parent: Element) -> dict[int, LineHit]:
    out: dict[int, LineHit] = {}
    for elem in parent.findall("./lines/line"):
        parsed = _parse_line(elem)
        if parsed is None:
            continue
        number, hit = parsed
        current = out.get(number)
        out[number] = hit if current is None else current.merged(hit)
    return out


def _build_result(root: Element) -> CoverageResult:
    result = CoverageResult()
    for pkg_elem in root.findall(".//packages/package"):
        pkg = result.package(pkg_elem.get("name") or "")
        for cls_elem in pkg_elem.findall("./classes/class"):
            filename = cls_elem.get("filename")
            if not filename:
                continue
            cls = pkg.file(filename).klass(cls_elem.get("name") or filename)
            for number, hit in _collect_lines(cls_elem).items():
                current = cls.lines.get(number)
                cls.lines[number] = hit if current is None else current.merged(hit)
            for method_elem in cls_elem.findall("./methods/method"):
                name = method_elem.get("name") or ""
                signature = method_elem.get("signature") or ""
                cls.method(name, signature).merge(
                    MethodCoverage(name=name, signature=signature, lines=_collect_lines(method_elem))
                )
    return result


def parse(
    path: Path,
    accumulator: CoverageResult | None = None,
    source_roots: set[str] | None = None,
) -> CoverageResult:
    """Parse the Cobertura report at *path*.

    The parsed tree is folded into *accumulator* when one is given, otherwise a
    fresh result is returned. ``<source>`` entries are added to *source_roots*.
    """
    root = read_root(path)
    if source_roots is not None:
        for elem in root.findall("./sources/source"):
            text = (elem.text or "").strip()
            if text:
                source_roots.add(text)
    parsed = _build_result(root)
    logger.debug("parsed %s: %d package(s)", path, len(parsed.packages))
    if accumulator is None:
        return parsed
    return accumulator.merge(parsed)


__all__ = ["parse", "parse_condition_coverage", "read_root"]
