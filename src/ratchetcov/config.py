"""Loading, saving, and serialised updating of threshold configuration.

The persisted document is JSON::

    {
      "version": 3,
      "max_history": 0,
      "pattern": "**/coverage.xml",
      "source_encoding": "utf-8",
      "policy": {"strict": false},
      "thresholds": {
        "healthy": [{"metric": "lines", "percent": 80.0}],
        "unhealthy": [],
        "failing": [{"metric": "conditionals", "percent": 70.0}]
      }
    }

A ``[tool.ratchetcov]`` table in ``pyproject.toml`` with the same keys can seed
the configuration; ratcheted targets are always written back as JSON.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
import tomllib
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ratchetcov._meta import logger
from ratchetcov.errors import ConfigConflictError, ConfigError
from ratchetcov.model.metrics import Metric
from ratchetcov.model.policy import Policy
from ratchetcov.model.thresholds import DEFAULT_MAX_HISTORY, ThresholdConfig, ThresholdSet, TierName
from ratchetcov.render.painter import check_encoding

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

CONFIG_FILENAME = "ratchetcov.json"
PYPROJECT_FILENAME = "pyproject.toml"

# Default logging format used by the CLI entry point.
LOG_FORMAT = "%(message)s"

_LOCKS: dict[Path, _PathLock] = {}
_LOCKS_GUARD = threading.Lock()


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything a job's configuration file holds."""

    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    policy: Policy = field(default_factory=Policy)
    pattern: str | None = None
    source_encoding: str | None = None


# --------------------------------------------------------------------------- #
# (de)serialisation                                                           #
# --------------------------------------------------------------------------- #


def _parse_tier(raw: object, tier: TierName) -> ThresholdSet:
    if isinstance(raw, dict):
        pairs = list(raw.items())
    elif isinstance(raw, list):
        pairs = []
        for entry in raw:
            if not isinstance(entry, dict) or "metric" not in entry or "percent" not in entry:
                msg = f"{tier} targets must be objects with 'metric' and 'percent': {entry!r}"
                raise ConfigError(msg)
            pairs.append((entry["metric"], entry["percent"]))
    else:
        msg = f"{tier} targets must be a list or a table, got {type(raw).__name__}"
        raise ConfigError(msg)

    seen: set[Metric] = set()
    checked: list[tuple[Metric, float]] = []
    for name, percent in pairs:
        try:
            metric = Metric.parse(str(name))
        except ValueError as exc:
            msg = f"{tier}: {exc}"
            raise ConfigError(msg) from exc
        if metric in seen:
            msg = f"{tier}: duplicate target for {metric}"
            raise ConfigError(msg)
        if isinstance(percent, bool) or not isinstance(percent, int | float):
            msg = f"{tier}: percent for {metric} must be a number, got {percent!r}"
            raise ConfigError(msg)
        seen.add(metric)
        checked.append((metric, float(percent)))
    try:
        return ThresholdSet.from_percentages(checked)
    except ValueError as exc:
        msg = f"{tier}: {exc}"
        raise ConfigError(msg) from exc


def settings_from_mapping(data: Mapping[str, Any]) -> Settings:
    """Build :class:`Settings` from a decoded configuration document."""
    thresholds_raw = data.get("thresholds", {})
    if not isinstance(thresholds_raw, dict):
        msg = "'thresholds' must be a table of tiers"
        raise ConfigError(msg)
    unknown = sorted(set(thresholds_raw) - {t.value for t in TierName})
    if unknown:
        msg = f"unknown threshold tier(s): {', '.join(unknown)}"
        raise ConfigError(msg)

    version = data.get("version", 0)
    max_history = data.get("max_history", DEFAULT_MAX_HISTORY)
    for key, value in (("version", version), ("max_history", max_history)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            msg = f"{key!r} must be a non-negative integer, got {value!r}"
            raise ConfigError(msg)

    tiers = {name: _parse_tier(thresholds_raw.get(name.value, []), name) for name in TierName}
    thresholds = ThresholdConfig(
        healthy=tiers[TierName.HEALTHY],
        unhealthy=tiers[TierName.UNHEALTHY],
        failing=tiers[TierName.FAILING],
        max_history=max_history,
        version=version,
    )

    policy_raw = data.get("policy", {})
    if not isinstance(policy_raw, dict):
        msg = "'policy' must be a table of switches"
        raise ConfigError(msg)
    try:
        policy = Policy.from_mapping(policy_raw)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    pattern = data.get("pattern")
    if pattern is not None and not isinstance(pattern, str):
        msg = f"'pattern' must be a string, got {pattern!r}"
        raise ConfigError(msg)

    source_encoding = data.get("source_encoding")
    if source_encoding is not None:
        if not isinstance(source_encoding, str):
            msg = f"'source_encoding' must be a string, got {source_encoding!r}"
            raise ConfigError(msg)
        try:
            source_encoding = check_encoding(source_encoding)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
    return Settings(thresholds=thresholds, policy=policy, pattern=pattern, source_encoding=source_encoding)


def settings_to_mapping(settings: Settings) -> dict[str, Any]:
    thresholds = settings.thresholds
    out: dict[str, Any] = {
        "version": thresholds.version,
        "max_history": thresholds.max_history,
    }
    if settings.pattern is not None:
        out["pattern"] = settings.pattern
    if settings.source_encoding is not None:
        out["source_encoding"] = settings.source_encoding
    out["policy"] = settings.policy.to_mapping()
    out["thresholds"] = {
        name.value: [
            {"metric": metric.value, "percent": percent}
            for metric, percent in thresholds.tier(name).to_percentages()
        ]
        for name in TierName
    }
    return out


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"unable to read {path}: {exc}"
        raise ConfigError(msg) from exc
    except json.JSONDecodeError as exc:
        msg = f"{path}: invalid JSON: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path}: expected a JSON object"
        raise ConfigError(msg)
    return data


def _read_pyproject(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as exc:
        msg = f"unable to read {path}: {exc}"
        raise ConfigError(msg) from exc
    except tomllib.TOMLDecodeError as exc:
        msg = f"{path}: invalid TOML: {exc}"
        raise ConfigError(msg) from exc
    return data.get("tool", {}).get("ratchetcov", {})


def load_settings(path: Path) -> Settings:
    """Load settings from a JSON document or a ``pyproject.toml``."""
    data = _read_pyproject(path) if path.suffix == ".toml" else _read_json(path)
    try:
        return settings_from_mapping(data)
    except ConfigError as exc:
        msg = f"{path}: {exc}"
        raise ConfigError(msg) from exc


def save_settings(settings: Settings, path: Path) -> None:
    """Atomically write *settings* to *path* as JSON."""
    text = json.dumps(settings_to_mapping(settings), indent=2) + "\n"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            Path(tmp).replace(path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
    except OSError as exc:
        msg = f"unable to write {path}: {exc}"
        raise ConfigError(msg) from exc


def discover_config(cwd: Path) -> tuple[Path, Path | None]:
    """Return ``(json_path, seed)`` for a project rooted at *cwd*.

    ``seed`` is a ``pyproject.toml`` carrying a ``[tool.ratchetcov]`` table and
    is only returned when the JSON document does not exist yet.
    """
    json_path = cwd / CONFIG_FILENAME
    if json_path.exists():
        return json_path, None
    pyproject = cwd / PYPROJECT_FILENAME
    if pyproject.is_file() and _read_pyproject(pyproject):
        return json_path, pyproject
    return json_path, None


# --------------------------------------------------------------------------- #
# store                                                                       #
# --------------------------------------------------------------------------- #


class _PathLock:
    """Re-entrant exclusive lock on ``<config>.lock``.

    Threads of one process queue on an ``RLock``; the outermost holder also
    takes an ``flock`` on the lock file so separate processes queue too.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._thread_lock = threading.RLock()
        self._depth = 0
        self._fd: int | None = None

    def _acquire_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except BaseException:
            os.close(fd)
            raise
        self._fd = fd

    def _release_file(self) -> None:
        fd, self._fd = self._fd, None
        if fd is not None:
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)

    def __enter__(self) -> _PathLock:
        self._thread_lock.acquire()
        if self._depth == 0:
            try:
                self._acquire_file()
            except OSError as exc:
                self._thread_lock.release()
                msg = f"unable to lock {self.path}: {exc}"
                raise ConfigError(msg) from exc
        self._depth += 1
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._depth -= 1
        try:
            if self._depth == 0:
                self._release_file()
        finally:
            self._thread_lock.release()


def lock_path(path: Path) -> Path:
    """Sibling file whose ``flock`` guards the configuration at *path*."""
    return path.with_name(f"{path.name}.lock")


def _lock_for(path: Path) -> _PathLock:
    key = path.resolve()
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(key, _PathLock(lock_path(key)))


class ThresholdStore:
    """Single-writer access to one job's persisted configuration.

    Evaluations of the same configuration are serialised through a lock keyed
    by the resolved path, held across threads and processes for the whole of
    :meth:`transaction`. Commits carry the version they were computed from and
    are refused when the document was rewritten without the lock.
    """

    def __init__(self, path: Path, *, seed: Path | None = None) -> None:
        self.path = path
        self.seed = seed
        self._lock = _lock_for(path)

    def load(self) -> Settings:
        if self.path.exists():
            return load_settings(self.path)
        if self.seed is not None:
            return load_settings(self.seed)
        msg = f"configuration not found: {self.path}"
        raise ConfigError(msg)

    def _current_version(self) -> int:
        if self.path.exists():
            return load_settings(self.path).thresholds.version
        if self.seed is not None:
            return load_settings(self.seed).thresholds.version
        return 0

    @contextmanager
    def transaction(self) -> Iterator[Settings]:
        """Hold the store's lock for the duration of one evaluation."""
        with self._lock:
            yield self.load()

    def commit(self, thresholds: ThresholdConfig, *, expected_version: int) -> ThresholdConfig:
        """Persist *thresholds* as the successor of *expected_version*."""
        with self._lock:
            current = self._current_version()
            if current != expected_version:
                msg = (
                    f"{self.path}: configuration changed during evaluation "
                    f"(expected version {expected_version}, found {current})"
                )
                raise ConfigConflictError(msg)
            base = self.load()
            committed = replace(thresholds, version=expected_version + 1)
            save_settings(replace(base, thresholds=committed), self.path)
            logger.debug("committed %s version %d", self.path, committed.version)
            return committed


__all__ = [
    "CONFIG_FILENAME",
    "LOG_FORMAT",
    "PYPROJECT_FILENAME",
    "Settings",
    "ThresholdStore",
    "discover_config",
    "load_settings",
    "lock_path",
    "save_settings",
    "settings_from_mapping",
    "settings_to_mapping",
]
