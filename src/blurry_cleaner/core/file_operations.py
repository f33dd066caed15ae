#!/usr/bin/env python3
"""
file_operations.py: filesystem access for image scanning.

Provides FileSystemProvider, which lists image files under a root as
ImageRecords, reads file bytes for analysis (refusing files above the
in-memory limit), and moves files into a trash directory.
"""

import asyncio
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..config import DEFAULT_TRASH_DIR, IMAGE_EXTS, MAX_INPUT_BYTES
from ..utils.log_utils import get_logger
from ..utils.utils import iter_files
from .errors import FileAccessError, OversizedInputError
from .records import ImageRecord, make_record_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrashResult:
    ok: bool
    message: Optional[str] = None
    moved: Tuple[str, ...] = ()


def build_move_command(src: Path, dest: Path) -> List[str]:
    """Build move command."""
    return ['mv', str(src), str(dest)]


def unique_destination(target_dir: Path, src: Path) -> Path:
    """Destination path inside target_dir that does not clobber an existing file."""
    dest = target_dir / src.name
    if dest.exists():
        stem, suffix = dest.stem, dest.suffix
        counter = 1
        while dest.exists():
            dest = target_dir / f"{stem}_{counter}{suffix}"
            counter += 1
    return dest


class FileSystemProvider:
    """Lists, reads and trashes image files on the local disk."""

    def __init__(self, trash_dir: Path = DEFAULT_TRASH_DIR, max_bytes: int = MAX_INPUT_BYTES):
        self.trash_dir = Path(trash_dir)
        self.max_bytes = max_bytes

    def list_images(self, root: Path) -> List[ImageRecord]:
        """
        Recursively collect image files under root.
        Unreadable directories and files are logged and skipped.
        """
        root = Path(root).resolve()
        records: List[ImageRecord] = []
        for path in iter_files(root):
            if path.suffix.lower() not in IMAGE_EXTS:
                continue
            try:
                st = path.stat()
            except OSError as e:
                logger.warning("Skip unreadable file %s: %s", path, e)
                continue
            absolute = str(path)
            records.append(ImageRecord(
                id=make_record_id(absolute),
                name=str(path.relative_to(root)),
                absolute_path=absolute,
                locator=path.as_uri(),
                size=st.st_size,
                modified_at=st.st_mtime,
                created_at=getattr(st, "st_birthtime", st.st_ctime),
            ))
        logger.debug("Found %d images under %s", len(records), root)
        return records

    def read_bytes_sync(self, path: str) -> bytes:
        """Read a file, refusing anything larger than max_bytes."""
        file_path = Path(path)
        try:
            if file_path.stat().st_size > self.max_bytes:
                raise OversizedInputError(self._oversized_message())
            data = file_path.read_bytes()
        except OSError as e:
            raise FileAccessError(str(e)) from e
        if len(data) > self.max_bytes:
            raise OversizedInputError(self._oversized_message())
        return data

    async def read_bytes(self, path: str) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read_bytes_sync, path)

    def _oversized_message(self) -> str:
        return f"file too large (>{self.max_bytes // (1024 * 1024)}MB) for in-memory scan"

    def trash(self, paths: Iterable[str]) -> TrashResult:
        """
        Move files into the trash directory, stopping at the first failure.
        ``moved`` on the result lists the source paths that were moved.
        """
        try:
            self.trash_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create trash dir %s: %s", self.trash_dir, e)
            return TrashResult(ok=False, message=str(e))

        moved: List[str] = []
        for path in paths:
            src = Path(path)
            dest = unique_destination(self.trash_dir, src)
            cmd = build_move_command(src, dest)
            logger.debug(' '.join(shlex.quote(c) for c in cmd))
            try:
                subprocess.run(cmd, check=True, capture_output=True, text=True)
            except subprocess.CalledProcessError as e:
                message = (e.stderr or '').strip() or f"mv exited with {e.returncode}"
                logger.error("Failed to trash %s: %s", src, message)
                return TrashResult(ok=False, message=message, moved=tuple(moved))
            except OSError as e:
                logger.error("Failed to trash %s: %s", src, e)
                return TrashResult(ok=False, message=str(e), moved=tuple(moved))
            moved.append(path)
        return TrashResult(ok=True, moved=tuple(moved))
