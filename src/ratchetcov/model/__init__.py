"""Domain model for ratchetcov (pure types + policy; no IO)."""

from .codec import decode, encode
from .metrics import CATALOG, Metric
from .result import CoverageResult, Ratio
from .thresholds import ThresholdConfig, ThresholdSet, TierName, parse_targets

__all__ = [
    "CATALOG",
    "CoverageResult",
    "Metric",
    "Ratio",
    "ThresholdConfig",
    "ThresholdSet",
    "TierName",
    "decode",
    "encode",
    "parse_targets",
]
