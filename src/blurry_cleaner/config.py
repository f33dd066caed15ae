"""
Configuration constants for blurry-cleaner.

Command-line flags in main.py override the scan defaults below.
"""
from pathlib import Path
from typing import Set

# --- Image discovery ---
IMAGE_EXTS: Set[str] = {
    '.jpg', '.jpeg', '.png', '.webp', '.gif', '.bmp', '.tif', '.tiff', '.heic', '.heif',
}

# --- Scheduling ---
DEFAULT_CONCURRENCY = 4
MAX_CONCURRENCY = 16
TICK_INTERVAL = 0.14  # seconds between dispatch ticks

# Files above this size are rejected before being read into memory
MAX_INPUT_BYTES = 30 * 1024 * 1024  # 30 MB

# --- Analysis ---
MAX_SIDE = 640
MIN_SIDE = 32

# --- Classification ---
DEFAULT_THRESHOLD = 42
THRESHOLD_MIN = 10
THRESHOLD_MAX = 80

# --- Trash ---
DEFAULT_TRASH_DIR = Path.home() / ".blurry_cleaner" / "trash"

# --- Demo set ---
DEMO_COUNT = 8
DEMO_SIZE = (800, 540)


def validate_threshold(value: int) -> int:
    """Return ``value`` as an int if it lies in the user-adjustable range."""
    threshold = int(value)
    if not THRESHOLD_MIN <= threshold <= THRESHOLD_MAX:
        raise ValueError(
            f"threshold must be between {THRESHOLD_MIN} and {THRESHOLD_MAX}, got {value}"
        )
    return threshold


def validate_concurrency(value: int) -> int:
    """Return ``value`` as an int if it is a usable worker count."""
    workers = int(value)
    if not 1 <= workers <= MAX_CONCURRENCY:
        raise ValueError(f"concurrency must be between 1 and {MAX_CONCURRENCY}, got {value}")
    return workers


def validate_tick_interval(value: float) -> float:
    """Return ``value`` as a float if it is a positive number of seconds."""
    interval = float(value)
    if not interval > 0:
        raise ValueError(f"tick interval must be a positive number of seconds, got {value}")
    return interval
