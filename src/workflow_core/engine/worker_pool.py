"""
Worker pool - bounded queue of executions drained by a fixed set of workers.

Each QueueItem is claimed by exactly one worker, which owns its
ExecutionContext until the item is terminal or handed back for a run-level
retry. Stopping is graceful: idle workers exit, busy workers stop their run
after the current batch, and unclaimed items are cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable

from ..core.exceptions import (
    LoopLimitExceeded,
    NodeExecutionError,
    QueueFullError,
    WorkerPoolStoppedError,
)
from .types import ExecutionContext, ExecutionError, QueueItem, utcnow

logger = logging.getLogger(__name__)

ExecuteFn = Callable[[ExecutionContext, Callable[[], bool]], Awaitable[ExecutionContext]]
PersistFn = Callable[[ExecutionContext], Awaitable[None]]


class WorkerPool:
    """Fixed-size asyncio worker pool over a bounded queue."""

    def __init__(
        self,
        execute: ExecuteFn,
        persist: PersistFn | None = None,
        worker_count: int = 4,
        max_size: int = 1000,
        run_retries: int = 1,
        run_retry_delay: float = 1.0,
    ) -> None:
        self._execute = execute
        self._persist_hook = persist
        self.worker_count = worker_count
        self.max_size = max_size
        self.run_retries = run_retries
        self.run_retry_delay = run_retry_delay

        self._queue: asyncio.Queue[QueueItem] | None = None
        self._workers: list[asyncio.Task] = []
        self._busy: set[int] = set()
        self._queued: dict[str, QueueItem] = {}
        self._claimed: dict[str, QueueItem] = {}
        self._delayed: set[asyncio.Task] = set()
        self._running = False
        self._stopping = False

    # --- Lifecycle ---

    @property
    def running(self) -> bool:
        return self._running and not self._stopping

    def start(self) -> None:
        if self._running:
            return
        self._queue = asyncio.Queue(maxsize=self.max_size)
        self._stopping = False
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"workflow-worker-{index}")
            for index in range(self.worker_count)
        ]
        logger.info(f"Worker pool started with {self.worker_count} workers")

    async def stop(self, timeout: float | None = None) -> None:
        """
        Stop the pool gracefully.

        No new items are claimed; in-flight executions stop after their
        current batch. Unclaimed items are persisted as cancelled. Workers
        still busy after `timeout` seconds are cancelled.
        """
        if not self._running or self._stopping:
            return
        self._stopping = True
        assert self._queue is not None

        unclaimed: list[QueueItem] = []
        while not self._queue.empty():
            unclaimed.append(self._queue.get_nowait())
            self._queue.task_done()
        for task in self._delayed:
            task.cancel()

        for index, task in enumerate(self._workers):
            if index not in self._busy:
                task.cancel()

        done, pending = await asyncio.wait(self._workers, timeout=timeout)
        if pending:
            logger.warning(f"Cancelling {len(pending)} workers still busy after {timeout}s")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        if self._delayed:
            await asyncio.gather(*self._delayed, return_exceptions=True)

        # Delayed retries still tracked here were cancelled before re-entering the queue
        unclaimed.extend(self._queued.values())
        for item in {i.execution_id: i for i in unclaimed}.values():
            await self._finalize_stopped(item.context)

        self._queued.clear()
        self._delayed.clear()
        self._workers = []
        self._running = False
        logger.info("Worker pool stopped")

    async def join(self) -> None:
        """Wait until every submitted item (including pending retries) is processed."""
        if self._queue is None:
            return
        while True:
            await self._queue.join()
            if not self._delayed:
                return
            await asyncio.wait(set(self._delayed))

    # --- Submission ---

    def ensure_accepting(self) -> None:
        """
        Raise if a submit would be rejected right now.

        Raises:
            WorkerPoolStoppedError: pool not started or stopping
            QueueFullError: queue at capacity
        """
        if not self.running or self._queue is None:
            raise WorkerPoolStoppedError()
        if self._queue.full():
            raise QueueFullError(self.max_size)

    def submit(self, context: ExecutionContext) -> QueueItem:
        self.ensure_accepting()
        item = QueueItem(context=context)
        self._enqueue(item)
        return item

    def _enqueue(self, item: QueueItem) -> None:
        assert self._queue is not None
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            raise QueueFullError(self.max_size) from None
        self._queued[item.execution_id] = item

    def find(self, execution_id: str) -> ExecutionContext | None:
        """Context of a queued or claimed execution."""
        item = self._claimed.get(execution_id) or self._queued.get(execution_id)
        return item.context if item else None

    @property
    def queue_size(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def in_flight(self) -> int:
        return len(self._claimed)

    # --- Workers ---

    def _stop_requested(self) -> bool:
        return self._stopping

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        while not self._stopping:
            item = await self._queue.get()
            self._busy.add(index)
            try:
                await self._process(item)
            except Exception:
                logger.exception(f"Worker {index} failed processing execution {item.execution_id}")
            finally:
                self._busy.discard(index)
                self._queue.task_done()

    async def _process(self, item: QueueItem) -> None:
        execution_id = item.execution_id
        self._queued.pop(execution_id, None)
        if execution_id in self._claimed:
            raise RuntimeError(f"Execution {execution_id} is already claimed by another worker")
        self._claimed[execution_id] = item
        try:
            retry = await self._run(item)
        finally:
            self._claimed.pop(execution_id, None)
        if retry:
            self._schedule_retry(item)

    async def _run(self, item: QueueItem) -> bool:
        """Run a claimed item. Returns True when it should be retried."""
        context = item.context
        if context.status.is_terminal:
            return False

        context.mark_running()
        await self._persist(context)
        try:
            await self._execute(context, self._stop_requested)
        except asyncio.CancelledError:
            context.cancel(_stopped_error("Execution interrupted by worker pool shutdown"))
            await self._persist(context)
            raise
        except LoopLimitExceeded as e:
            logger.warning(f"Execution {context.execution_id} failed: {e.message}")
            context.fail(ExecutionError.from_exception(e))
        except Exception as e:
            if item.attempt <= self.run_retries and not self._stopping and not context.cancel_requested:
                logger.warning(
                    f"Execution {context.execution_id} run {item.attempt} failed ({e}), "
                    f"retrying ({item.attempt}/{self.run_retries})"
                )
                context.reset_for_retry()
                await self._persist(context)
                return True
            if isinstance(e, NodeExecutionError):
                logger.warning(f"Execution {context.execution_id} failed at node {e.node_id}: {e.message}")
            else:
                logger.exception(f"Execution {context.execution_id} failed unexpectedly")
            context.fail(ExecutionError.from_exception(e))

        await self._persist(context)
        logger.info(f"Execution {context.execution_id} finished with status {context.status.value}")
        return False

    def _schedule_retry(self, item: QueueItem) -> None:
        retry = QueueItem(
            context=item.context,
            attempt=item.attempt + 1,
            next_run_at=utcnow() + timedelta(seconds=self.run_retry_delay),
        )
        self._queued[retry.execution_id] = retry
        if self.run_retry_delay <= 0:
            self._requeue(retry)
            return
        task = asyncio.create_task(self._requeue_later(retry))
        self._delayed.add(task)
        task.add_done_callback(self._delayed.discard)

    async def _requeue_later(self, item: QueueItem) -> None:
        delay = (item.next_run_at - utcnow()).total_seconds() if item.next_run_at else 0
        if delay > 0:
            await asyncio.sleep(delay)
        self._requeue(item)

    def _requeue(self, item: QueueItem) -> None:
        if self._stopping:
            return
        try:
            self._enqueue(item)
        except QueueFullError as e:
            self._queued.pop(item.execution_id, None)
            item.context.fail(ExecutionError.from_exception(e))
            task = asyncio.create_task(self._persist(item.context))
            self._delayed.add(task)
            task.add_done_callback(self._delayed.discard)

    async def _finalize_stopped(self, context: ExecutionContext) -> None:
        if context.status.is_terminal:
            return
        context.cancel(_stopped_error("Execution was not started before the worker pool stopped"))
        await self._persist(context)

    async def _persist(self, context: ExecutionContext) -> None:
        if self._persist_hook is None:
            return
        try:
            await self._persist_hook(context)
        except Exception:
            logger.exception(f"Failed to persist execution {context.execution_id}")


def _stopped_error(message: str) -> ExecutionError:
    return ExecutionError(message=message, code="WorkerPoolStopped")
