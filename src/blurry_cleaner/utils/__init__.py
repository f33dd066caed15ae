"""
Utility functions and helpers.
"""

from .log_utils import configure_logging, get_logger
from .utils import iter_files, format_size

__all__ = ["configure_logging", "get_logger", "iter_files", "format_size"]
