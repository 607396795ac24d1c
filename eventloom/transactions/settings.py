"""Retry configuration using pydantic-settings."""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

from .config import TransactionOptions
from .retry import RetryStrategy
from .scheduler import RetryScheduler


class RetrySettings(BaseSettings):
    """Environment-driven defaults for transaction retries.

    All settings can be configured via environment variables with the
    EVENTLOOM_RETRY_ prefix. For example:
    - EVENTLOOM_RETRY_MAX_RETRIES=5
    - EVENTLOOM_RETRY_RETRY_DELAY=0.05
    - EVENTLOOM_RETRY_DEADLINE_SECONDS=2.5

    Attributes:
        max_retries: Retries allowed after the first attempt. Unset means
            unlimited.
        retry_delay: Seconds to wait before each retry. 0 yields to the
            event loop without sleeping.
        deadline_seconds: Time budget for retries, counted from the first
            failure. Takes precedence over ``max_retries`` when set.

    Example:
        >>> settings = RetrySettings()
        >>> options = settings.options(advanced=True)
        >>> result = await try_with(load, Order, "order-42", place_order, options)
    """

    max_retries: int | None = Field(default=None, ge=0)
    retry_delay: float = Field(default=0.0, ge=0)
    deadline_seconds: float | None = Field(default=None, ge=0)

    model_config = {"env_prefix": "EVENTLOOM_RETRY_"}

    def strategy(self) -> RetryStrategy:
        """Build a fresh retry strategy from these settings."""
        if self.deadline_seconds is not None:
            return RetryStrategy.deadline(self.deadline_seconds)
        if self.max_retries is None:
            return RetryStrategy.unbounded()
        return RetryStrategy.counter(self.max_retries)

    def scheduler(self) -> RetryScheduler:
        """Build the retry scheduler from these settings."""
        if self.retry_delay > 0:
            return RetryScheduler.fixed_delay(self.retry_delay)
        return RetryScheduler.next_turn()

    def options(self, **overrides: Any) -> TransactionOptions:
        """Build transaction options, applying keyword overrides on top.

        Args:
            **overrides: Any TransactionOptions field.
        """
        values: dict[str, Any] = {
            "retry_strategy": self.strategy(),
            "scheduler": self.scheduler(),
        }
        values.update(overrides)
        return TransactionOptions(**values)
