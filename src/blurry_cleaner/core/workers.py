import asyncio
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Optional

from ..config import DEFAULT_CONCURRENCY, validate_concurrency
from ..utils.log_utils import get_logger
from .analyzer import AnalyzeRequest, AnalyzeResponse, handle_request

logger = get_logger(__name__)


class AnalysisWorkerPool:
    """
    Pool of isolated analysis processes.

    Requests and responses are plain picklable messages; workers share no
    state with the coordinator. The CPU-bound analysis runs in the executor
    so the event loop stays free to dispatch and collect results.
    """

    def __init__(self, max_workers: int = DEFAULT_CONCURRENCY, executor: Optional[Executor] = None) -> None:
        self.max_workers = validate_concurrency(max_workers)
        self._executor = executor
        self._owns_executor = executor is None

    def start(self) -> None:
        if self._executor is None:
            logger.debug("Starting %d analysis worker processes", self.max_workers)
            self._executor = ProcessPoolExecutor(max_workers=self.max_workers)

    async def submit(self, request: AnalyzeRequest) -> AnalyzeResponse:
        """Run one request in a worker and return its response."""
        self.start()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, handle_request, request)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def __enter__(self) -> 'AnalysisWorkerPool':
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
