#!/usr/bin/env python3
"""
scan_engine.py: bounded-concurrency scan scheduler for blurry-cleaner.

ScanScheduler owns the record store, a FIFO queue of pending record ids and
the set of ids currently in flight. Each dispatch tick fills the free worker
slots (concurrency minus in-flight) in discovery order; every task reads the
file bytes through the provider (or falls back to the record locator when
there is no provider), runs the analysis in the worker pool and reports back
through on_task_complete(). The session ends when nothing is pending and
nothing is in flight.

Results are tagged with the session number so completions that arrive after a
new session has started are discarded. Optional callbacks can be attached to
follow session state and per-record completion.
"""

import asyncio
from collections import deque
from dataclasses import replace
from typing import Callable, Deque, FrozenSet, Iterable, List, Optional, Protocol, Set, Tuple

from ..config import DEFAULT_CONCURRENCY, TICK_INTERVAL, validate_concurrency, validate_tick_interval
from ..utils.log_utils import get_logger
from .analyzer import AnalyzeRequest, AnalyzeResponse, ByBytes, ByLocator, Failure, ImageSource, Success
from .errors import ScanError
from .file_operations import FileSystemProvider, TrashResult
from .records import ImageRecord, RecordState, RecordStore

logger = get_logger(__name__)


class AnalysisPool(Protocol):
    async def submit(self, request: AnalyzeRequest) -> AnalyzeResponse:
        ...


class ScanScheduler:
    """
    Coordinates analysis of every record in a scan session.
    Only this object writes to the record store.
    """

    def __init__(
        self,
        pool: AnalysisPool,
        provider: Optional[FileSystemProvider] = None,
        store: Optional[RecordStore] = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        tick_interval: float = TICK_INTERVAL,
    ) -> None:
        self.pool = pool
        self.provider = provider
        self.store = store if store is not None else RecordStore()
        self.concurrency = validate_concurrency(concurrency)
        self.tick_interval = validate_tick_interval(tick_interval)
        self.active: bool = False
        self.session_id: int = 0
        self._pending: Deque[str] = deque()
        self._in_flight: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._wakeup: Optional[asyncio.Event] = None
        self.on_state_change: Optional[Callable[[bool], None]] = None
        # on_record_complete(record) after an analysis or error is merged
        self.on_record_complete: Optional[Callable[[ImageRecord], None]] = None

    @property
    def pending(self) -> Tuple[str, ...]:
        return tuple(self._pending)

    @property
    def in_flight(self) -> FrozenSet[str]:
        return frozenset(self._in_flight)

    @property
    def progress(self) -> int:
        return self.store.progress()

    def state_of(self, record_id: str) -> Optional[RecordState]:
        record = self.store.get(record_id)
        if record is None:
            return None
        if record_id in self._in_flight:
            return RecordState.IN_FLIGHT
        if record.analysis is not None:
            return RecordState.ANALYZED
        if record.error is not None:
            return RecordState.FAILED
        return RecordState.PENDING

    def _set_active(self, active: bool) -> None:
        if self.active == active:
            return
        self.active = active
        if self.on_state_change:
            self.on_state_change(active)

    def _wake(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()

    def start_session(self, records: Optional[Iterable[ImageRecord]] = None) -> int:
        """
        Begin a new session, optionally replacing the record set.
        Every record without an analysis, an error or the trashed flag is queued.
        Results still in flight from earlier sessions will be ignored.
        """
        self.session_id += 1
        self._pending.clear()
        self._in_flight.clear()
        if records is not None:
            self.store.replace_all(records)
        self._pending.extend(r.id for r in self.store if r.schedulable)
        logger.info(
            "Session %d: %d of %d images queued",
            self.session_id, len(self._pending), len(self.store),
        )
        self._set_active(True)
        self._wake()
        return self.session_id

    def rescan(self, records: Iterable[ImageRecord]) -> int:
        """Start a fresh session, keeping earlier analyses and trash flags; failed records are retried."""
        previous = {r.id: r for r in self.store}
        merged = []
        for record in records:
            old = previous.get(record.id)
            if old is not None:
                record = replace(record, analysis=old.analysis, trashed=old.trashed, error=None)
            merged.append(record)
        return self.start_session(merged)

    def _prune_pending(self) -> None:
        if any(not self._is_schedulable(i) for i in self._pending):
            self._pending = deque(i for i in self._pending if self._is_schedulable(i))

    def _is_schedulable(self, record_id: str) -> bool:
        record = self.store.get(record_id)
        return record is not None and record.schedulable

    def _finish(self) -> None:
        logger.info(
            "Session %d complete: %d analyzed, %d failed",
            self.session_id, self.store.analyzed_count(), self.store.failed_count(),
        )
        self._set_active(False)
        self._wake()

    def tick(self) -> List[str]:
        """
        One dispatch step: move up to the number of free slots from pending to
        in flight. Must be called from a running event loop.
        Returns the ids dispatched.
        """
        if not self.active:
            return []
        if not self._pending and not self._in_flight:
            self._finish()
            return []

        open_slots = max(0, self.concurrency - len(self._in_flight))
        dispatched: List[str] = []
        loop = asyncio.get_running_loop()
        while open_slots > 0 and self._pending:
            record_id = self._pending.popleft()
            record = self.store.get(record_id)
            if record is None or not record.schedulable:
                continue
            self._in_flight.add(record_id)
            task = loop.create_task(self._dispatch(self.session_id, record))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            dispatched.append(record_id)
            open_slots -= 1
        return dispatched

    async def _acquire_source(self, record: ImageRecord) -> Optional[ImageSource]:
        if self.provider is not None:
            return ByBytes(await self.provider.read_bytes(record.absolute_path))
        if record.locator:
            return ByLocator(record.locator)
        return None

    async def _dispatch(self, session: int, record: ImageRecord) -> None:
        try:
            source = await self._acquire_source(record)
        except ScanError as e:
            message = str(e) or type(e).__name__
            self.on_task_complete(AnalyzeResponse(record.id, Failure(message), session))
            return
        except Exception as e:
            logger.exception("Reading %s failed", record.name)
            self.on_task_complete(AnalyzeResponse(record.id, Failure(f"read failure: {e}"), session))
            return

        request = AnalyzeRequest(record_id=record.id, source=source, session=session)
        try:
            response = await self.pool.submit(request)
        except Exception as e:
            logger.exception("Worker failed on %s", record.name)
            response = AnalyzeResponse(record.id, Failure(f"worker failure: {e}"), session)
        self.on_task_complete(response)

    def on_task_complete(self, response: AnalyzeResponse) -> bool:
        """
        Apply a worker response to its record.
        Returns False when the response belongs to an earlier session or an id
        that is not in flight.
        """
        if response.session != self.session_id or response.record_id not in self._in_flight:
            logger.debug("Discarding stale result for %s (session %d)", response.record_id, response.session)
            return False
        self._in_flight.discard(response.record_id)

        outcome = response.outcome
        if isinstance(outcome, Success):
            record = self.store.merge_analysis(response.record_id, outcome.metrics)
        else:
            record = self.store.merge_error(response.record_id, outcome.message)
            if record is not None:
                logger.warning("Failed: %s: %s", record.name, outcome.message)

        if record is not None and self.on_record_complete:
            self.on_record_complete(record)

        if not self._pending and not self._in_flight:
            self._finish()
        else:
            self._wake()
        return True

    async def run(self) -> None:
        """
        Drive dispatch until the session is inactive. Ticks every
        tick_interval seconds and also right after each completion.
        """
        self._wakeup = asyncio.Event()
        try:
            while self.active:
                self.tick()
                if not self.active:
                    break
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self.tick_interval)
                except asyncio.TimeoutError:
                    pass
                self._wakeup.clear()
        finally:
            self._wakeup = None

    async def scan(self, records: Optional[Iterable[ImageRecord]] = None) -> Tuple[ImageRecord, ...]:
        """Start a session over ``records`` and wait for it to finish."""
        self.start_session(records)
        await self.run()
        return self.store.snapshot()

    def trash(self, record_ids: Iterable[str]) -> TrashResult:
        """
        Trash the files behind the given records. Records stay in the store
        with trashed=True and are never dispatched again.

        If the provider stops partway, the files it already moved are still
        marked trashed and the result reports the failure.
        """
        wanted = list(record_ids)
        targets = [r for r in (self.store.get(i) for i in wanted) if r is not None and not r.trashed]
        if not targets:
            return TrashResult(ok=True, message="Nothing to trash")
        if self.provider is None:
            moved = tuple(t.absolute_path for t in targets)
            result = TrashResult(ok=True, moved=moved)
        else:
            result = self.provider.trash([t.absolute_path for t in targets])
            moved = result.moved

        moved_paths = set(moved)
        self.store.mark_trashed(t.id for t in targets if t.absolute_path in moved_paths)
        self._prune_pending()
        if not result.ok:
            message = result.message or "Failed to move files to trash"
            return TrashResult(
                ok=False,
                message=f"{message} (moved {len(moved)} of {len(targets)} file(s))",
                moved=moved,
            )
        logger.info("Moved %d file(s) to the trash", len(moved))
        return TrashResult(ok=True, message=f"Moved {len(moved)} file(s) to the trash", moved=moved)
