"""
Core functionality for image quality scanning.
"""

from .quality import QualityMetrics, classify, compute_metrics
from .analyzer import (
    AnalyzeRequest,
    AnalyzeResponse,
    ByBytes,
    ByLocator,
    Success,
    Failure,
    analyze,
    analyze_image,
    handle_request,
)
from .errors import ScanError, DecodeError, OversizedInputError, FileAccessError, UnsupportedInputError
from .records import ImageRecord, RecordEvent, RecordState, RecordStore, make_record_id
from .file_operations import FileSystemProvider, TrashResult
from .workers import AnalysisWorkerPool
from .scan_engine import ScanScheduler
from .demo import create_demo_images

__all__ = [
    "QualityMetrics",
    "classify",
    "compute_metrics",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "ByBytes",
    "ByLocator",
    "Success",
    "Failure",
    "analyze",
    "analyze_image",
    "handle_request",
    "ScanError",
    "DecodeError",
    "OversizedInputError",
    "FileAccessError",
    "UnsupportedInputError",
    "ImageRecord",
    "RecordEvent",
    "RecordState",
    "RecordStore",
    "make_record_id",
    "FileSystemProvider",
    "TrashResult",
    "AnalysisWorkerPool",
    "ScanScheduler",
    "create_demo_images",
]
