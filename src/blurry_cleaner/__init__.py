"""
Blurry Cleaner

Scans an image library for blurred, low-contrast or noisy shots and moves
the ones you pick to a trash folder.
"""

__version__ = "0.1.0"

from .core.quality import QualityMetrics, classify
from .core.analyzer import analyze
from .core.records import ImageRecord, RecordStore
from .core.file_operations import FileSystemProvider
from .core.workers import AnalysisWorkerPool
from .core.scan_engine import ScanScheduler
from .core.demo import create_demo_images

__all__ = [
    "QualityMetrics",
    "classify",
    "analyze",
    "ImageRecord",
    "RecordStore",
    "FileSystemProvider",
    "AnalysisWorkerPool",
    "ScanScheduler",
    "create_demo_images",
]
