"""Locate coverage reports in a workspace and move them into build storage."""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException, ElementTree

from ratchetcov._meta import logger
from ratchetcov.errors import InvalidCoverageXMLError, ReportTransportError

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_PATTERN = "**/coverage.xml"

_UNSAFE_RE = re.compile(r"\.\.|[/\\:]")


def _split_patterns(pattern: str) -> list[str]:
    return [p.strip() for p in pattern.split(",") if p.strip()]


def check_report(path: Path) -> None:
    """Raise unless *path* is an XML document whose first element is ``<coverage>``."""
    try:
        with path.open("rb") as fh:
            for _event, elem in ElementTree.iterparse(fh, events=("start",)):
                tag = (elem.tag or "").split("}")[-1]
                if tag == "coverage":
                    return
                msg = f"{path} is not a cobertura coverage report, please check your report pattern"
                raise InvalidCoverageXMLError(msg)
    except ElementTree.ParseError as exc:
        msg = f"{path} is not an XML file, please check your report pattern"
        raise InvalidCoverageXMLError(msg) from exc
    except DefusedXmlException as exc:
        msg = f"{path} contains forbidden XML constructs: {exc!r}"
        raise InvalidCoverageXMLError(msg) from exc
    except OSError as exc:
        msg = f"unable to read {path}: {exc}"
        raise ReportTransportError(msg) from exc
    msg = f"{path} is not an XML file, please check your report pattern"
    raise InvalidCoverageXMLError(msg)


def discover_reports(workspace: Path, pattern: str = DEFAULT_PATTERN) -> tuple[Path, ...]:
    """Return validated reports under *workspace* matching *pattern*.

    *pattern* is a comma separated list of globs relative to the workspace.
    Matches are de-duplicated; each pattern's matches are sorted by path.
    """
    patterns = _split_patterns(pattern)
    if not patterns:
        msg = "report pattern must be non-empty"
        raise ValueError(msg)
    absolute = [pat for pat in patterns if Path(pat).is_absolute()]
    if absolute:
        msg = f"report pattern must be relative to the workspace: {', '.join(absolute)}"
        raise ValueError(msg)

    seen: set[Path] = set()
    out: list[Path] = []
    for pat in patterns:
        for candidate in sorted(workspace.glob(pat)):
            if candidate.is_file() and candidate not in seen:
                seen.add(candidate)
                out.append(candidate)

    for path in out:
        check_report(path)
    logger.debug("pattern %r matched %d report(s) under %s", pattern, len(out), workspace)
    return tuple(out)


def stored_name(index: int) -> str:
    return f"coverage{index or ''}.xml"


def copy_reports(reports: Sequence[Path], build_dir: Path) -> tuple[Path, ...]:
    """Copy *reports* into *build_dir* as ``coverage.xml``, ``coverage1.xml``, ..."""
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"unable to create build directory {build_dir}"
        raise ReportTransportError(msg) from exc

    copied: list[Path] = []
    for index, report in enumerate(reports):
        target = build_dir / stored_name(index)
        try:
            shutil.copyfile(report, target)
        except OSError as exc:
            msg = f"Unable to copy coverage from {report} to {build_dir}"
            raise ReportTransportError(msg) from exc
        copied.append(target)
    return tuple(copied)


def sanitize_filename(name: str) -> str:
    """Flatten *name* into a single safe path component.

    Parent references and path separators (``/``, ``\\``, ``:``) each become
    ``_``: ``'../aaa/bbb'`` -> ``'__aaa_bbb'``.
    """
    return _UNSAFE_RE.sub("_", name)


__all__ = [
    "DEFAULT_PATTERN",
    "check_report",
    "copy_reports",
    "discover_reports",
    "sanitize_filename",
    "stored_name",
]
