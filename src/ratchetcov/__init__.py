"""Coverage quality gates with one-way threshold ratcheting."""

from ratchetcov._meta import __version__, logger
from ratchetcov.engine.publish import Outcome, OutcomeStatus, evaluate, publish
from ratchetcov.model.metrics import Metric
from ratchetcov.model.thresholds import ThresholdConfig, ThresholdSet

__all__ = [
    "Metric",
    "Outcome",
    "OutcomeStatus",
    "ThresholdConfig",
    "ThresholdSet",
    "__version__",
    "evaluate",
    "logger",
    "publish",
]
