"""Bounded-concurrency work processor.

Callers enqueue items, then ``await processor.run(handler)``. The run sizes a
pool of worker loops to ``min(pending items, max_concurrency)`` and each loop
keeps pulling items until it finds the queue empty. A semaphore sized to the
pool caps how many handlers execute at once.

Usage:
    processor = BoundedWorkProcessor[str](max_concurrency=4)
    for url in urls:
        processor.enqueue(url)
    await processor.run(fetch)
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from queuepool.config import FAILURE_POLICIES, get_settings
from queuepool.observability.metrics import ProcessorMetrics
from queuepool.shared.concurrency import call_handler
from queuepool.shared.context import WorkerContext, clear_worker_context, set_worker_context
from queuepool.shared.exceptions import (
    HandlerFailure,
    InvalidConfigurationError,
    ProcessingFailedError,
    ProcessorAlreadyRunningError,
)
from queuepool.shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# handler(item, sequence_number, processor); may be sync or async
Handler = Callable[[T, int, "BoundedWorkProcessor[T]"], Any]


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a processor's counters."""

    processed: int
    active: int
    pending: int
    worker_loops: int


class BoundedWorkProcessor(Generic[T]):
    """Drains a FIFO queue with a bounded number of concurrent handlers.

    Counters and the worker set are only mutated on the event loop thread.
    ``enqueue`` may be called from any thread.

    Enqueueing after a run has finished leaves the item pending until the
    next ``run`` call; nothing else about reuse is guaranteed.
    """

    def __init__(
        self,
        max_concurrency: int | None = None,
        *,
        name: str = "default",
        rebalance_workers: bool | None = None,
        failure_policy: str | None = None,
    ) -> None:
        settings = get_settings()

        if max_concurrency is None:
            max_concurrency = settings.default_max_concurrency
        if (
            isinstance(max_concurrency, bool)
            or not isinstance(max_concurrency, int)
            or max_concurrency <= 0
        ):
            raise InvalidConfigurationError(
                "max_concurrency must be a positive integer",
                details={"max_concurrency": max_concurrency},
            )

        policy = failure_policy if failure_policy is not None else settings.failure_policy
        if policy not in FAILURE_POLICIES:
            raise InvalidConfigurationError(
                f"Unknown failure_policy '{policy}'",
                details={"failure_policy": policy, "supported": list(FAILURE_POLICIES)},
            )

        self.name = name
        self.max_concurrency = max_concurrency
        self.failure_policy = policy
        self.rebalance_workers = (
            settings.rebalance_workers if rebalance_workers is None else rebalance_workers
        )

        self._queue: deque[T] = deque()
        self._processed = 0
        self._active = 0
        self._running = False
        self._gate: asyncio.Semaphore | None = None
        self._handler: Handler[T] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._workers: set[asyncio.Task[None]] = set()
        self._next_worker_id = 0
        self._metrics = ProcessorMetrics(name, enabled=settings.metrics_enabled)

    # ----- Progress -----

    @property
    def processed_item_count(self) -> int:
        """Items dequeued so far, across all runs of this instance."""
        return self._processed

    @property
    def active_worker_count(self) -> int:
        """Workers currently executing the handler (holding a permit)."""
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def is_running(self) -> bool:
        return self._running

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            processed=self._processed,
            active=self._active,
            pending=len(self._queue),
            worker_loops=sum(1 for task in self._workers if not task.done()),
        )

    # ----- Enqueue -----

    def enqueue(self, item: T) -> None:
        """Append an item to the tail of the queue. Never blocks."""
        self._queue.append(item)
        self._metrics.pending_changed(len(self._queue))
        loop = self._loop
        if self.rebalance_workers and self._running and loop is not None:
            loop.call_soon_threadsafe(self._rebalance)

    def enqueue_many(self, items: Iterable[T]) -> None:
        for item in items:
            self.enqueue(item)

    # ----- Run -----

    async def run(self, handler: Handler[T]) -> None:
        """Process queued items until every worker loop finds the queue empty.

        Args:
            handler: Called as ``handler(item, sequence_number, processor)``.
                Coroutine functions are awaited; plain callables run in the
                default threadpool.

        Raises:
            ProcessorAlreadyRunningError: If a run is already in progress.
            HandlerFailure: First failure, under the ``first_error`` policy.
            ProcessingFailedError: All failures, under ``collect_all``.
        """
        if self._running:
            raise ProcessorAlreadyRunningError(self.name)

        worker_count = min(len(self._queue), self.max_concurrency)
        if worker_count == 0:
            logger.debug("run_skipped", processor=self.name, reason="queue_empty")
            return

        gate_size = self.max_concurrency if self.rebalance_workers else worker_count
        self._running = True
        self._handler = handler
        self._loop = asyncio.get_running_loop()
        self._gate = asyncio.Semaphore(gate_size)

        logger.info(
            "run_started",
            processor=self.name,
            worker_count=worker_count,
            pending=len(self._queue),
            rebalance_workers=self.rebalance_workers,
        )

        failures: list[HandlerFailure] = []
        try:
            for _ in range(worker_count):
                self._spawn_worker()

            # Rebalancing may add tasks while we wait
            while self._workers:
                done, _ = await asyncio.wait(self._workers, return_when=asyncio.FIRST_COMPLETED)
                batch: list[HandlerFailure] = []
                for task in done:
                    self._workers.discard(task)
                    if task.cancelled():
                        continue
                    error = task.exception()
                    if error is None:
                        continue
                    if not isinstance(error, HandlerFailure):
                        raise error
                    batch.append(error)
                # Loops finishing in the same tick are ordered by dequeue position
                failures.extend(sorted(batch, key=lambda f: f.sequence_number))
        finally:
            self._running = False
            if self._workers:
                for task in self._workers:
                    task.cancel()
                await asyncio.gather(*self._workers, return_exceptions=True)
                self._workers.clear()

        if failures:
            logger.warning(
                "run_failed",
                processor=self.name,
                failures=len(failures),
                processed=self._processed,
                failure_policy=self.failure_policy,
            )
            if self.failure_policy == "collect_all":
                raise ProcessingFailedError(failures)
            raise failures[0]

        logger.info("run_completed", processor=self.name, processed=self._processed)

    # ----- Workers -----

    def _spawn_worker(self) -> None:
        self._next_worker_id += 1
        worker_id = self._next_worker_id
        task = asyncio.create_task(
            self._worker_loop(worker_id),
            name=f"{self.name}-worker-{worker_id}",
        )
        self._workers.add(task)

    def _rebalance(self) -> None:
        """Spawn loops for items enqueued mid-run, up to max_concurrency."""
        if not self._running:
            return
        live = sum(1 for task in self._workers if not task.done())
        spawn = min(self.max_concurrency - live, len(self._queue))
        for _ in range(spawn):
            self._spawn_worker()
        if spawn > 0:
            logger.debug("workers_rebalanced", processor=self.name, spawned=spawn, live=live)

    async def _worker_loop(self, worker_id: int) -> None:
        gate = self._gate
        handler = self._handler
        if gate is None or handler is None:
            raise RuntimeError("Worker loop started outside of run()")

        handled = 0
        while True:
            try:
                item = self._queue.popleft()
            except IndexError:
                break

            # Claimed before the permit: sequence numbers follow dequeue order
            self._processed += 1
            sequence_number = self._processed
            self._metrics.item_dequeued(len(self._queue))

            await gate.acquire()
            self._active += 1
            self._metrics.handler_started()
            token = set_worker_context(WorkerContext(self.name, worker_id, sequence_number))
            start = time.perf_counter()
            failed = False
            try:
                await call_handler(handler, item, sequence_number, self)
            except asyncio.CancelledError as e:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    # run() is tearing this loop down
                    raise
                failed = True
                logger.warning("handler_failed", error="cancelled", error_type=type(e).__name__)
                raise HandlerFailure(item, sequence_number, worker_id, e) from e
            except Exception as e:
                failed = True
                logger.warning("handler_failed", error=str(e), error_type=type(e).__name__)
                raise HandlerFailure(item, sequence_number, worker_id, e) from e
            finally:
                clear_worker_context(token)
                self._active -= 1
                self._metrics.handler_finished(time.perf_counter() - start, failed)
                gate.release()
            handled += 1

        logger.debug(
            "worker_loop_finished",
            processor=self.name,
            worker_id=worker_id,
            handled=handled,
        )
