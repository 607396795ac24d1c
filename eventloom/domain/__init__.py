"""Domain primitives for event sourcing.

This module contains the building blocks that users extend or handle:

- Aggregate: Base class for aggregates rebuilt from their commits
- Event: Typed record of a single state change
- Commit: Immutable batch of events occupying one slot of a stream
- EventStreamError and its subclasses: the error taxonomy shared by
  stores and the transaction loop
"""

from .aggregate import Aggregate
from .commit import Commit
from .event import Event, utc_now
from .exceptions import (
    ConcurrencyError,
    ErrorKind,
    EventStreamError,
    ReplayError,
    RetrievalError,
    SinkError,
    SlotValidationError,
    is_retriable,
)

__all__ = [
    "Aggregate",
    "Commit",
    "Event",
    "utc_now",
    # Errors
    "ErrorKind",
    "EventStreamError",
    "ConcurrencyError",
    "RetrievalError",
    "ReplayError",
    "SlotValidationError",
    "SinkError",
    "is_retriable",
]
