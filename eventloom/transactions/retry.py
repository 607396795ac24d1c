import time
from abc import ABC, abstractmethod


class RetryLimitExceeded(Exception):
    """Returned by a strategy to signal that no further attempt is allowed."""


class RetryStrategy(ABC):
    """Decides, per failure, whether a transaction may be attempted again.

    A strategy is called with each load or append failure and returns
    None when another attempt is acceptable, or an exception describing
    why the transaction should stop. The transaction loop additionally
    requires the failure itself to be tagged retriable before retrying.

    Strategies that count attempts keep their count on the instance, so
    create one strategy per transaction.

    Examples:
        Retry forever (the default):

        >>> strategy = RetryStrategy.unbounded()

        Allow at most three retries:

        >>> strategy = RetryStrategy.counter(3)

        Keep retrying for up to two seconds:

        >>> strategy = RetryStrategy.deadline(2.0)
    """

    @staticmethod
    def unbounded() -> "RetryStrategy":
        return CounterStrategy(None)

    @staticmethod
    def counter(max_retries: int) -> "RetryStrategy":
        return CounterStrategy(max_retries)

    @staticmethod
    def never() -> "RetryStrategy":
        return CounterStrategy(0)

    @staticmethod
    def deadline(seconds: float) -> "RetryStrategy":
        return DeadlineStrategy(seconds)

    @abstractmethod
    def __call__(self, error: BaseException) -> BaseException | None:
        """Return None to allow a retry, or the reason to stop."""
        ...


class CounterStrategy(RetryStrategy):
    """Allow a fixed number of retries, or unlimited retries when None.

    Attributes:
        max_retries: Number of retries allowed after the first attempt.
        retries: Number of failures seen so far.
    """

    __slots__ = ("max_retries", "retries")

    def __init__(self, max_retries: int | None):
        if max_retries is not None and max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.max_retries = max_retries
        self.retries = 0

    def __call__(self, error: BaseException) -> BaseException | None:
        self.retries += 1
        if self.max_retries is not None and self.retries > self.max_retries:
            return RetryLimitExceeded(f"Retry limit ({self.max_retries}) reached")
        return None


class DeadlineStrategy(RetryStrategy):
    """Allow retries until a time budget, counted from the first failure, runs out."""

    __slots__ = ("seconds", "_started")

    def __init__(self, seconds: float):
        if seconds < 0:
            raise ValueError("seconds must be non-negative")
        self.seconds = seconds
        self._started: float | None = None

    def __call__(self, error: BaseException) -> BaseException | None:
        now = time.monotonic()
        if self._started is None:
            self._started = now
        if now - self._started >= self.seconds:
            return RetryLimitExceeded(f"Retry deadline ({self.seconds}s) reached")
        return None
