import logging
from typing import Callable, List, Optional

from qaforge.config.settings import settings
from qaforge.core.batch.task_pool import BoundedTaskPool, Worker
from qaforge.models.batch import BatchReport, ProgressState, WorkItem, WorkResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressState], None]

class BatchCoordinator:
    """
    Runs one generation job per work item through a BoundedTaskPool and
    aggregates the outcome. A failing item is recorded, never raised.
    Progress is updated once per finished item and pushed to the callback.
    """

    def __init__(self,
                 concurrency_limit: Optional[int] = None,
                 item_timeout: Optional[float] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.concurrency_limit = concurrency_limit if concurrency_limit is not None else settings.task.concurrency_limit
        self.item_timeout = item_timeout if item_timeout is not None else settings.task.item_timeout
        self.progress_callback = progress_callback
        self.progress = ProgressState()
        self._pool: Optional[BoundedTaskPool] = None
        self._running = False
        self._stop_requested = False

    def stop(self) -> None:
        """
        Stop launching new items; in-flight items drain.
        Applies to the running batch, or to the next one when called between runs.
        """
        if self._running:
            self._pool.stop()
        else:
            self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        """True while a stop is pending, or when the current or last run was stopped."""
        return self._stop_requested or (self._pool is not None and self._pool.stopped)

    async def run_batch(self, items: List[WorkItem], generate_one: Worker) -> BatchReport:
        self.progress = ProgressState(total=len(items))
        self._pool = BoundedTaskPool(self.concurrency_limit, self.item_timeout)
        if self._stop_requested:
            # A pending stop is consumed by this run only
            self._pool.stop()
            self._stop_requested = False

        logger.info(f"Starting batch of {len(items)} items (concurrency {self.concurrency_limit})")
        self._running = True
        try:
            results = await self._pool.run(items, generate_one, on_result=self._on_result)
        finally:
            self._running = False

        report = BatchReport.from_results(results)
        logger.info(f"Batch finished: {report.succeeded} succeeded, {report.failed} failed")
        return report

    def _on_result(self, result: WorkResult) -> None:
        # Sole mutation point for progress, runs on the event loop once per harvested result
        self.progress.record(result)
        if not self.progress_callback:
            return
        try:
            self.progress_callback(self.progress.model_copy())
        except Exception:
            logger.exception("Progress callback failed")


async def run_batch(items: List[WorkItem],
                    generate_one: Worker,
                    limit: Optional[int] = None,
                    item_timeout: Optional[float] = None,
                    progress_callback: Optional[ProgressCallback] = None) -> BatchReport:
    coordinator = BatchCoordinator(limit, item_timeout, progress_callback)
    return await coordinator.run_batch(items, generate_one)
