"""
Terminal user interfaces.
"""

from .rich_ui import RichScanUI

__all__ = ["RichScanUI"]
