import os
from pathlib import Path
from typing import Iterator

from .log_utils import get_logger

logger = get_logger(__name__)


def iter_files(root: Path) -> Iterator[Path]:
    """
    Recursively yield file paths under `root` using os.scandir for speed.

    Unreadable directories are logged and skipped.
    """
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    if entry.is_dir(follow_symlinks=False):
                        stack.append(Path(entry.path))
                    elif entry.is_file(follow_symlinks=False):
                        yield Path(entry.path)
        except OSError as e:
            logger.warning("Skip unreadable dir %s: %s", current, e)
            continue


def format_size(num_bytes: float) -> str:
    """Human readable byte count (B, KB, MB)."""
    if num_bytes < 1024:
        return f"{num_bytes:.0f} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"
