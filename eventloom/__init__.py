"""eventloom - optimistic-concurrency transactions over event streams.

This module provides the public API for loading event-sourced aggregates,
running logic against them and committing the result with automatic
retries on concurrency conflicts.
"""

from .domain import (
    Aggregate,
    Commit,
    ConcurrencyError,
    Event,
    EventStreamError,
)
from .routing import applies_event
from .streams import EventStreamStore, InMemoryEventStreamStore
from .transactions import (
    AggregateLoader,
    RetryScheduler,
    RetryStrategy,
    TransactionOptions,
    TransactionResult,
    try_with,
)

__all__ = [
    # Domain primitives
    "Aggregate",
    "Commit",
    "Event",
    "EventStreamError",
    "ConcurrencyError",
    # Decorators
    "applies_event",
    # Streams
    "EventStreamStore",
    "InMemoryEventStreamStore",
    # Transactions
    "try_with",
    "AggregateLoader",
    "TransactionOptions",
    "TransactionResult",
    "RetryStrategy",
    "RetryScheduler",
]
