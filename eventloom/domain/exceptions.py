"""Exceptions raised by event streams and transactions.

Every error carries the same fixed set of fields so that retry strategies
can classify failures without probing for ad hoc attributes:

- ``kind``: an ErrorKind naming the failure class
- ``retriable``: whether another attempt may succeed
- ``detail``: a free-form diagnostic payload
"""

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    """Failure classes recognised by the transaction loop."""

    CONCURRENCY = "concurrency"
    RETRIEVAL = "retrieval"
    REPLAY = "replay"
    VALIDATION = "validation"
    SINK = "sink"


class EventStreamError(Exception):
    """Base class for all event stream and transaction errors."""

    kind: ClassVar[ErrorKind]
    default_retriable: ClassVar[bool] = False

    def __init__(
        self,
        message: str,
        *,
        retriable: bool | None = None,
        detail: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.retriable = self.default_retriable if retriable is None else retriable
        self.detail: dict[str, Any] = dict(detail or {})

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({str(self)!r}, kind={self.kind.value}, "
            f"retriable={self.retriable})"
        )


class ConcurrencyError(EventStreamError):
    """Raised when an optimistic concurrency check fails.

    The offered slot was not greater than the current length of the stream,
    which means another writer appended to the sequence after it was loaded.
    Always retriable.

    Attributes:
        offered: The slot number carried by the rejected commit.
        current: The stream length at the time of the append.
    """

    kind = ErrorKind.CONCURRENCY
    default_retriable = True

    def __init__(self, sequence_id: str, offered: int, current: int):
        super().__init__(
            f"Optimistic concurrency conflict on {sequence_id!r}: "
            f"offered slot {offered}, current length {current}",
            retriable=True,
            detail={"sequence_id": sequence_id, "offered": offered, "current": current},
        )
        self.sequence_id = sequence_id
        self.offered = offered
        self.current = current


class RetrievalError(EventStreamError):
    """Raised when the store cannot read a stream's history at all."""

    kind = ErrorKind.RETRIEVAL


class ReplayError(EventStreamError):
    """Raised when applying a historical commit to an aggregate fails.

    Indicates a data or logic defect rather than a race, so it is never
    retriable. The original error is kept as ``__cause__``.
    """

    kind = ErrorKind.REPLAY

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None):
        super().__init__(message, retriable=False, detail=detail)


class SlotValidationError(EventStreamError):
    """Raised for an out-of-range slot before any I/O is performed."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None):
        super().__init__(message, retriable=False, detail=detail)


class SinkError(EventStreamError):
    """Raised when a store refuses an append for a reason other than a slot conflict."""

    kind = ErrorKind.SINK


def is_retriable(error: BaseException) -> bool:
    """Return True if ``error`` is explicitly tagged as retriable.

    Errors that do not carry a ``retriable`` flag are never considered
    retriable.
    """
    return getattr(error, "retriable", False) is True
