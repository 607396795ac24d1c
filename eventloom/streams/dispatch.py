"""Dispatch of newly appended commits to consumers.

This module provides:
- DispatchQueue: A consumer-owned, ordered channel of commits
- CommitDispatcher: The registry a store fans appended commits out through
"""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable

from ..domain import Commit

LOGGER = logging.getLogger(__name__)


class DispatchQueue:
    """Ordered channel of commits for a single consumer.

    The store only ever pushes onto the queue; the consumer reads from it
    with ``next()`` (waiting for the next commit), ``drain()`` (taking
    everything currently buffered) or ``async for``.

    Limitations:
    - No thread safety (use from the event loop that owns the store)
    - Unbounded buffer, no backpressure
    """

    def __init__(self) -> None:
        self._pending: deque[Commit] = deque()
        self._available = asyncio.Event()

    def push(self, commit: Commit) -> None:
        """Buffer a commit for the consumer."""
        self._pending.append(commit)
        self._available.set()

    def depth(self) -> int:
        """Get the number of commits that can be read without waiting."""
        return len(self._pending)

    async def next(self) -> Commit:
        """Wait for and return the next commit in append order."""
        while not self._pending:
            self._available.clear()
            await self._available.wait()
        return self._pending.popleft()

    def drain(self) -> list[Commit]:
        """Return every buffered commit, in order, without waiting."""
        drained = list(self._pending)
        self._pending.clear()
        return drained

    async def process(self, handler: Callable[[Commit], Awaitable[None]]) -> int:
        """Hand every buffered commit to ``handler``, in order.

        Stops at the first handler failure; the failing commit and those
        after it stay buffered.

        Returns:
            The number of commits processed.
        """
        processed = 0
        while self._pending:
            await handler(self._pending[0])
            self._pending.popleft()
            processed += 1
        return processed

    def __aiter__(self) -> AsyncIterator[Commit]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Commit]:
        while True:
            yield await self.next()


class CommitDispatcher:
    """Registry of dispatch queues fed with every appended commit.

    Queues receive commits in registration order, and each queue sees
    commits in global append order. A queue only receives commits
    dispatched after it was registered.
    """

    def __init__(self) -> None:
        self._queues: list[DispatchQueue] = []

    def register(self) -> DispatchQueue:
        """Create, register and return a fresh queue."""
        queue = DispatchQueue()
        self._queues.append(queue)
        return queue

    def dispatch(self, commit: Commit) -> None:
        """Push a commit onto every registered queue.

        A queue that fails to accept the commit is logged and skipped; the
        remaining queues still receive it.
        """
        for queue in self._queues:
            try:
                queue.push(commit)
            except Exception:
                LOGGER.exception(
                    "Failed to dispatch commit",
                    extra={"sequence_id": commit.sequence_id, "slot": commit.slot},
                )

    def __len__(self) -> int:
        return len(self._queues)
