"""Retrying transactions over event-sourced aggregates.

This package provides:
- try_with / TransactionExecutor: The load-execute-commit loop
- TransactionOptions: Per-call options
- RetryStrategy: Pluggable retry decisions
- RetryScheduler: The yield primitive between attempts
- AggregateLoader: Rebuilds aggregates from an event stream store
- RetrySettings: Environment-driven defaults
"""

from .config import TransactionOptions
from .executor import TransactionExecutor, TransactionResult, try_with
from .loader import AggregateLoader, Loader, LoadResult, Rehydration
from .retry import (
    CounterStrategy,
    DeadlineStrategy,
    RetryLimitExceeded,
    RetryStrategy,
)
from .scheduler import (
    FixedDelayScheduler,
    NextTurnScheduler,
    RetryScheduler,
)
from .settings import RetrySettings

__all__ = [
    # Transaction loop
    "try_with",
    "TransactionExecutor",
    "TransactionResult",
    "TransactionOptions",
    # Loading
    "AggregateLoader",
    "Loader",
    "LoadResult",
    "Rehydration",
    # Retry decisions
    "RetryStrategy",
    "CounterStrategy",
    "DeadlineStrategy",
    "RetryLimitExceeded",
    # Scheduling
    "RetryScheduler",
    "NextTurnScheduler",
    "FixedDelayScheduler",
    # Configuration
    "RetrySettings",
]
