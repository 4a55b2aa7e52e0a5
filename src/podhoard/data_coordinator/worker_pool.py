"""Bounded-concurrency worker pool over an asyncio queue.

Items are put on an ``asyncio.Queue`` and drained by a fixed number of
worker tasks, so at most ``concurrency`` handlers run at any instant. The
caller gets a WorkerPoolHandle it can await for the batch outcome or
cancel.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass
class PoolOutcome[T]:
    """What happened to each item of a batch.

    Attributes:
        succeeded: Items whose handler returned normally.
        failed: Items whose handler raised, with the error.
    """

    succeeded: list[T] = field(default_factory=list)
    failed: list[tuple[T, Exception]] = field(default_factory=list)


class WorkerPoolHandle[T]:
    """Completion signal for a batch submitted to a WorkerPool.

    Attributes:
        _workers: The worker tasks draining the queue.
        _outcome: Shared outcome the workers record into.
    """

    def __init__(self, workers: list[asyncio.Task[None]], outcome: PoolOutcome[T]):
        self._workers = workers
        self._outcome = outcome

    @property
    def done(self) -> bool:
        """True once every worker has exited."""
        return all(worker.done() for worker in self._workers)

    async def wait(self) -> PoolOutcome[T]:
        """Wait for every item to be handled and return the outcome.

        Raises:
            asyncio.CancelledError: If the batch was cancelled.
        """
        await asyncio.gather(*self._workers)
        return self._outcome

    async def cancel(self) -> PoolOutcome[T]:
        """Cancel outstanding work and wait for the workers to stop.

        Returns:
            The outcome of items that finished before cancellation.
        """
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        return self._outcome


class WorkerPool[T]:
    """Run an async handler over items with bounded concurrency.

    Attributes:
        _concurrency: Maximum handlers running at once.
        _name: Prefix for worker task names.
    """

    def __init__(self, concurrency: int, name: str = "worker"):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._concurrency = concurrency
        self._name = name

    @property
    def concurrency(self) -> int:
        """Maximum handlers running at once."""
        return self._concurrency

    def start(
        self,
        items: Iterable[T],
        handler: Callable[[T], Awaitable[object]],
    ) -> WorkerPoolHandle[T]:
        """Queue ``items`` and start the workers.

        A handler that raises is recorded as failed and the worker moves on
        to the next item; one item's failure never stops the others.

        Args:
            items: The batch.
            handler: Coroutine function applied to each item.

        Returns:
            A handle for awaiting or cancelling the batch.
        """
        queue: asyncio.Queue[T] = asyncio.Queue()
        for item in items:
            queue.put_nowait(item)
        outcome: PoolOutcome[T] = PoolOutcome()

        async def worker(index: int) -> None:
            while True:
                try:
                    item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    await handler(item)
                except Exception as e:
                    outcome.failed.append((item, e))
                    logger.debug(
                        "Worker item failed.",
                        extra={"worker": f"{self._name}-{index}"},
                        exc_info=e,
                    )
                else:
                    outcome.succeeded.append(item)
                finally:
                    queue.task_done()

        worker_count = min(self._concurrency, queue.qsize())
        workers = [
            asyncio.create_task(worker(i), name=f"{self._name}-{i}")
            for i in range(worker_count)
        ]
        logger.debug(
            "Worker pool started.",
            extra={
                "pool": self._name,
                "items": queue.qsize(),
                "workers": worker_count,
            },
        )
        return WorkerPoolHandle(workers, outcome)
