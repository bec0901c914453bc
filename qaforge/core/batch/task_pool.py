import asyncio
import inspect
import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Set

from qaforge.models.batch import WorkItem, WorkResult

logger = logging.getLogger(__name__)

NOT_STARTED_ERROR = "not started: batch stopped"

Worker = Callable[[WorkItem], Any]
ResultHook = Callable[[WorkResult], None]

class BoundedTaskPool:
    """
    Runs work items with at most `limit` of them in flight at any instant.

    Every submitted item yields exactly one WorkResult. A worker exception or
    timeout is captured as a failed result and never cancels the other
    in-flight items. The pool never rejects work, it only delays starting it.
    Results come back in completion order; re-key by id for input order.

    Plain callables run on a pool-owned thread executor of `limit` threads.
    A thread cannot be interrupted, so a timed-out thread item reports its
    failure at once but keeps its slot until the thread returns.
    """

    def __init__(self, limit: int, item_timeout: Optional[float] = None):
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self.limit = limit
        self.item_timeout = item_timeout
        self._stopped = False
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lingering: Set[asyncio.Future] = set()

    def stop(self) -> None:
        """Stop launching new items. Items already in flight run to completion."""
        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def run(self,
                  items: List[WorkItem],
                  worker: Worker,
                  on_result: Optional[ResultHook] = None) -> List[WorkResult]:
        queue = deque(items)
        in_flight: Dict[asyncio.Task, WorkItem] = {}
        results: List[WorkResult] = []
        self._executor = ThreadPoolExecutor(max_workers=self.limit, thread_name_prefix="qaforge-worker")
        self._lingering = set()

        def harvest(result: WorkResult) -> None:
            results.append(result)
            if on_result:
                on_result(result)

        try:
            while queue or in_flight:
                # Top the occupied slots back up to the limit
                while len(in_flight) + len(self._lingering) < self.limit and queue and not self._stopped:
                    item = queue.popleft()
                    task = asyncio.create_task(self._attempt(item, worker))
                    in_flight[task] = item

                if self._stopped and queue:
                    logger.info(f"Pool stopped, {len(queue)} items will not be started")
                    while queue:
                        harvest(WorkResult.from_error(queue.popleft().id, NOT_STARTED_ERROR))

                waitables = set(in_flight) | self._lingering
                if not waitables:
                    break

                # Suspend until an item finishes or a timed-out thread frees its slot
                done, _ = await asyncio.wait(waitables, return_when=asyncio.FIRST_COMPLETED)
                for future in done:
                    if future in in_flight:
                        in_flight.pop(future)
                        harvest(future.result())
                    else:
                        self._lingering.discard(future)
        finally:
            self._executor.shutdown(wait=False)

        return results

    async def _attempt(self, item: WorkItem, worker: Worker) -> WorkResult:
        if self._is_async(worker):
            future = asyncio.ensure_future(worker(item))
        else:
            future = asyncio.get_running_loop().run_in_executor(self._executor, worker, item)

        # asyncio.wait never raises on expiry, so a TimeoutError from the worker stays a worker failure
        done, _ = await asyncio.wait({future}, timeout=self.item_timeout)
        if not done:
            if isinstance(future, asyncio.Task):
                future.cancel()
                await asyncio.wait({future})
            else:
                self._lingering.add(future)
                future.add_done_callback(lambda f: self._late_finish(item, f))
            logger.warning(f"Item {item.id} timed out after {self.item_timeout}s")
            return WorkResult.from_error(item.id, f"timed out after {self.item_timeout}s")

        try:
            outcome = future.result()
            # Plain callables may still hand back an awaitable
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            return self._failure(item, e)

        if isinstance(outcome, WorkResult):
            # Workers may report their own failures without raising
            if outcome.id != item.id:
                outcome = outcome.model_copy(update={"id": item.id})
            return outcome
        return WorkResult.from_success(item.id, outcome)

    def _late_finish(self, item: WorkItem, future: asyncio.Future) -> None:
        self._lingering.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.warning(f"Timed-out item {item.id} later failed: {future.exception()}")

    def _failure(self, item: WorkItem, error: Exception) -> WorkResult:
        logger.warning(f"Item {item.id} failed: {error}")
        return WorkResult.from_error(item.id, str(error) or type(error).__name__)

    @staticmethod
    def _is_async(worker: Worker) -> bool:
        return inspect.iscoroutinefunction(worker) or inspect.iscoroutinefunction(getattr(worker, "__call__", None))
