"""Centralised exception hierarchy for ratchetcov."""

from __future__ import annotations


class RatchetcovError(Exception):
    """Base class for all custom ratchetcov exceptions."""


class CoverageXMLError(RatchetcovError):
    """Base class for errors related to coverage XML handling."""


class CoverageXMLNotFoundError(CoverageXMLError):
    """Coverage XML file could not be located on disk."""


class InvalidCoverageXMLError(CoverageXMLError):
    """Coverage XML file was found but does not contain a valid report."""


class ReportTransportError(RatchetcovError):
    """A coverage report could not be read or copied into build storage."""


class NoCoverageDataError(RatchetcovError):
    """Aggregation was requested without any coverage reports."""


class ConfigError(RatchetcovError):
    """Threshold configuration is missing, unreadable, or invalid."""


class ConfigConflictError(ConfigError):
    """The stored configuration changed underneath a pending ratchet commit."""


class BuildAbortedError(RatchetcovError):
    """Coverage evaluation decided the build must fail."""

    kind = "aborted"


class NoReportsError(BuildAbortedError):
    """No coverage reports matched for the build."""

    kind = "no-reports"


class UnstableCoverageError(BuildAbortedError):
    """Coverage fell below the failing tier while strict mode is on."""

    kind = "unstable-coverage"


class UnhealthyCoverageError(BuildAbortedError):
    """Coverage fell below the unhealthy tier while health is enforced."""

    kind = "unhealthy-coverage"


__all__ = [
    "BuildAbortedError",
    "ConfigConflictError",
    "ConfigError",
    "CoverageXMLError",
    "CoverageXMLNotFoundError",
    "InvalidCoverageXMLError",
    "NoCoverageDataError",
    "NoReportsError",
    "RatchetcovError",
    "ReportTransportError",
    "UnhealthyCoverageError",
    "UnstableCoverageError",
]
