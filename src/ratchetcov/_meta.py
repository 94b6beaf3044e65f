from __future__ import annotations

import logging
from importlib.metadata import version

__version__ = version("ratchetcov")

logger = logging.getLogger("ratchetcov")

__all__ = ["__version__", "logger"]
