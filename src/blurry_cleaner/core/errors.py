"""
Exception hierarchy for per-record scan failures.

Every error here is non-fatal for a scan session: the scheduler stores the
message on the affected record and keeps dispatching the rest.
"""


class ScanError(Exception):
    """Base exception for all blurry-cleaner scan errors."""
    pass


class DecodeError(ScanError):
    """Raised when image bytes cannot be fetched or decoded into a bitmap."""
    pass


class OversizedInputError(ScanError):
    """Raised when a file exceeds the in-memory read limit."""
    pass


class FileAccessError(ScanError):
    """Raised when a file cannot be read (missing path, permissions, I/O)."""
    pass


class UnsupportedInputError(ScanError):
    """Raised when an analysis request carries neither bytes nor a locator."""
    pass
