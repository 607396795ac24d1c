"""Event stream infrastructure for eventloom.

This package provides:
- EventStreamStore: Append-only, per-identity streams of commits
- InMemoryEventStreamStore: Reference backend with failure simulation
- DispatchQueue / CommitDispatcher: Fan-out of appended commits to consumers
"""

from .dispatch import CommitDispatcher, DispatchQueue
from .store import (
    CommitApplier,
    EventStreamStore,
    InMemoryEventStreamStore,
    validate_since,
)

__all__ = [
    "EventStreamStore",
    "InMemoryEventStreamStore",
    "CommitApplier",
    "validate_since",
    # Dispatch
    "DispatchQueue",
    "CommitDispatcher",
]
