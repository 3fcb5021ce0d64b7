"""
Shared utilities: logging, observability, text cleaning and datetime helpers.
"""

from .logger import get_logger, setup_logging
from .observability import ObservabilityManager, get_observability

__all__ = ["ObservabilityManager", "get_logger", "get_observability", "setup_logging"]
