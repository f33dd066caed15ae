"""
records.py - image records and the single-owner record store.

ImageRecord values are immutable; the store swaps in a new value whenever a
record gains an analysis, an error or the trashed flag. Only the scheduler
mutates the store. Observers receive RecordEvent notifications carrying the
affected records and can read a full snapshot at any time.
"""

import hashlib
from dataclasses import dataclass, replace, field
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Any

from ..utils.log_utils import get_logger
from .quality import QualityMetrics

logger = get_logger(__name__)


def make_record_id(path: str) -> str:
    """Stable id for a record: MD5 hex digest of its absolute path."""
    return hashlib.md5(str(path).encode('utf-8')).hexdigest()


class RecordState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    ANALYZED = "analyzed"
    FAILED = "failed"


@dataclass(frozen=True)
class ImageRecord:
    id: str
    name: str
    absolute_path: str
    locator: str
    size: int
    modified_at: float
    created_at: float
    analysis: Optional[QualityMetrics] = None
    error: Optional[str] = None
    trashed: bool = False

    @property
    def resolved(self) -> bool:
        """True once the record has an analysis or an error."""
        return self.analysis is not None or self.error is not None

    @property
    def schedulable(self) -> bool:
        return not self.resolved and not self.trashed

    def with_analysis(self, metrics: QualityMetrics) -> 'ImageRecord':
        return replace(self, analysis=metrics, error=None)

    def with_error(self, message: str) -> 'ImageRecord':
        return replace(self, error=message)

    def with_trashed(self) -> 'ImageRecord':
        return replace(self, trashed=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "absolute_path": self.absolute_path,
            "locator": self.locator,
            "size": self.size,
            "modified_at": self.modified_at,
            "created_at": self.created_at,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "error": self.error,
            "trashed": self.trashed,
        }


@dataclass(frozen=True)
class RecordEvent:
    """Change notification: kind is one of reset, analyzed, failed, trashed."""
    kind: str
    records: Tuple[ImageRecord, ...] = field(default_factory=tuple)


Observer = Callable[[RecordEvent], None]


class RecordStore:
    """Ordered-by-discovery collection of ImageRecords with change notification."""

    def __init__(self, records: Iterable[ImageRecord] = ()):
        self._records: Dict[str, ImageRecord] = {}
        self._observers: List[Observer] = []
        self._load(records)

    def _load(self, records: Iterable[ImageRecord]) -> None:
        self._records = {}
        for record in records:
            if record.id in self._records:
                logger.warning(
                    "Duplicate record id %s for %s (keeping %s)",
                    record.id, record.absolute_path, self._records[record.id].absolute_path,
                )
                continue
            self._records[record.id] = record

    def replace_all(self, records: Iterable[ImageRecord]) -> None:
        self._load(records)
        self._notify(RecordEvent("reset", self.snapshot()))

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, event: RecordEvent) -> None:
        for observer in list(self._observers):
            observer(event)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def get(self, record_id: str) -> Optional[ImageRecord]:
        return self._records.get(record_id)

    def snapshot(self) -> Tuple[ImageRecord, ...]:
        return tuple(self._records.values())

    def merge_analysis(self, record_id: str, metrics: QualityMetrics) -> Optional[ImageRecord]:
        """Attach metrics to an unresolved record. Resolved records are never re-analyzed."""
        record = self._records.get(record_id)
        if record is None or record.resolved:
            return None
        updated = record.with_analysis(metrics)
        self._records[record_id] = updated
        self._notify(RecordEvent("analyzed", (updated,)))
        return updated

    def merge_error(self, record_id: str, message: str) -> Optional[ImageRecord]:
        record = self._records.get(record_id)
        if record is None or record.resolved:
            return None
        updated = record.with_error(message)
        self._records[record_id] = updated
        self._notify(RecordEvent("failed", (updated,)))
        return updated

    def mark_trashed(self, record_ids: Iterable[str]) -> List[ImageRecord]:
        changed = []
        for record_id in record_ids:
            record = self._records.get(record_id)
            if record is None or record.trashed:
                continue
            updated = record.with_trashed()
            self._records[record_id] = updated
            changed.append(updated)
        if changed:
            self._notify(RecordEvent("trashed", tuple(changed)))
        return changed

    def visible(self, hide_trashed: bool = True, flagged_only: bool = False,
                threshold: Optional[float] = None) -> List[ImageRecord]:
        """Records a viewer shows, optionally limited to ones below ``threshold``."""
        base = [r for r in self._records.values() if not (hide_trashed and r.trashed)]
        if not flagged_only:
            return base
        if threshold is None:
            raise ValueError("threshold is required when flagged_only is set")
        return [r for r in base if r.analysis is not None and r.analysis.quality < threshold]

    def flagged(self, threshold: float, hide_trashed: bool = True) -> List[ImageRecord]:
        return self.visible(hide_trashed=hide_trashed, flagged_only=True, threshold=threshold)

    def analyzed_count(self, hide_trashed: bool = True) -> int:
        return sum(1 for r in self.visible(hide_trashed) if r.analysis is not None)

    def failed_count(self, hide_trashed: bool = True) -> int:
        return sum(1 for r in self.visible(hide_trashed) if r.error is not None)

    def progress(self) -> int:
        """Percentage (0-100) of visible records that are analyzed or failed."""
        visible = self.visible()
        if not visible:
            return 0
        done = sum(1 for r in visible if r.resolved)
        return round(done / len(visible) * 100)
