"""Plain-text source annotation with per-line hit counts."""

from __future__ import annotations

import codecs
from pathlib import Path
from typing import TYPE_CHECKING

from ratchetcov._meta import logger
from ratchetcov.inputs.discover import sanitize_filename

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ratchetcov.model.result import CoverageResult, LineHit

PAINTED_SUFFIX = ".txt"
DEFAULT_SOURCE_ENCODING = "utf-8"


def check_encoding(name: str) -> str:
    """Return *name* unchanged if Python knows the codec, else raise ``ValueError``."""
    try:
        codecs.lookup(name)
    except LookupError as exc:
        msg = f"unknown source encoding: {name!r}"
        raise ValueError(msg) from exc
    return name


def locate_source(name: str, source_roots: Iterable[str]) -> Path | None:
    """Return the file for *name*.

    Absolute names are used as they are; relative names are looked up under each
    root in sorted order.
    """
    candidate = Path(name)
    if candidate.is_absolute():
        return candidate if candidate.is_file() else None
    for root in sorted(source_roots):
        path = Path(root) / name
        if path.is_file():
            return path
    return None


def _marker(hit: LineHit | None) -> str:
    if hit is None:
        return " "
    if hit.hits == 0:
        return "-"
    if hit.branches_total and hit.branches_covered < hit.branches_total:
        return "~"
    return "+"


def paint_file(source: Path, hits: dict[int, LineHit], *, encoding: str = DEFAULT_SOURCE_ENCODING) -> str:
    lines = source.read_text(encoding=encoding, errors="replace").splitlines()
    out: list[str] = []
    for number, code in enumerate(lines, start=1):
        hit = hits.get(number)
        count = "" if hit is None else str(hit.hits)
        out.append(f"{number:>5} {count:>7} {_marker(hit)} {code}")
    return "\n".join(out) + "\n"


def paint_sources(
    result: CoverageResult,
    source_roots: Iterable[str],
    target_dir: Path,
    *,
    encoding: str = DEFAULT_SOURCE_ENCODING,
) -> list[Path]:
    """Write an annotated copy of every locatable source file into *target_dir*.

    Files that cannot be found under any source root are skipped. I/O errors
    propagate; callers treat them as non-fatal.
    """
    roots = list(source_roots)
    target_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for name, hits in sorted(result.painted_sources().items()):
        source = locate_source(name, roots)
        if source is None:
            logger.debug("source not found for %s", name)
            continue
        target = target_dir / (sanitize_filename(name) + PAINTED_SUFFIX)
        target.write_text(paint_file(source, hits, encoding=encoding), encoding="utf-8")
        written.append(target)
    return written


__all__ = ["DEFAULT_SOURCE_ENCODING", "check_encoding", "locate_source", "paint_file", "paint_sources"]
