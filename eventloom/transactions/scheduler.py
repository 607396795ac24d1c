import asyncio
from abc import ABC, abstractmethod


class RetryScheduler(ABC):
    """Yields control before a transaction is attempted again.

    The scheduler is the only place a retry waits. Deferring instead of
    retrying synchronously lets other tasks on the event loop, including
    the writer that won the race, make progress.
    """

    @staticmethod
    def next_turn() -> "RetryScheduler":
        return NextTurnScheduler()

    @staticmethod
    def fixed_delay(seconds: float) -> "RetryScheduler":
        return FixedDelayScheduler(seconds)

    @abstractmethod
    async def defer(self) -> None:
        """Return once the next attempt may run."""
        ...


class NextTurnScheduler(RetryScheduler):
    """Defer to the next iteration of the event loop."""

    async def defer(self) -> None:
        await asyncio.sleep(0)


class FixedDelayScheduler(RetryScheduler):
    """Wait a fixed number of seconds before each retry."""

    __slots__ = ("seconds",)

    def __init__(self, seconds: float):
        if seconds < 0:
            raise ValueError("retry_delay must be non-negative")
        self.seconds = seconds

    async def defer(self) -> None:
        await asyncio.sleep(self.seconds)
