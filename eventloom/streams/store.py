"""Event stream store interface and the in-memory reference backend."""

import logging
import math
from abc import ABC, abstractmethod
from typing import Protocol

from ..domain import (
    Commit,
    ConcurrencyError,
    RetrievalError,
    SinkError,
    SlotValidationError,
)
from .dispatch import CommitDispatcher, DispatchQueue

LOGGER = logging.getLogger(__name__)


class CommitApplier(Protocol):
    """Anything that can have historical commits applied to it."""

    def apply_commit(self, commit: Commit) -> None: ...


def validate_since(since: int | float | None) -> int:
    """Normalize a replay start slot.

    Args:
        since: First slot to replay (inclusive). None means 1. Fractional
            values are floored.

    Raises:
        SlotValidationError: If the slot is lower than 1.
    """
    if since is None:
        return 1
    start = math.floor(since)
    if start < 1:
        raise SlotValidationError(
            f"Cannot start applying commits from slot {since}: slots start at 1",
            detail={"since": since},
        )
    return start


class EventStreamStore(ABC):
    """Abstract interface for append-only, per-identity streams of commits.

    Each sequence identity owns one stream. A stream grows only by
    ``append``, which acts as the optimistic-concurrency gate: a commit is
    accepted only if its slot is greater than the current stream length,
    so at most one writer can ever occupy a given slot.

    Key responsibilities:
    - **Ordering**: Commits are stored and replayed in slot order
    - **Concurrency Control**: Slot comparison at write time, no locking
    - **Immutability**: Commits are never modified or renumbered
    - **Dispatch**: Every appended commit is pushed to registered queues
    """

    @abstractmethod
    async def append(self, commit: Commit) -> None:
        """Append a commit to the stream named by its sequence id.

        Raises:
            ConcurrencyError: If the commit's slot is not greater than the
                current stream length. Always retriable.
            SinkError: If the store refuses the append for another reason.
        """
        ...

    @abstractmethod
    async def rehydrate(
        self,
        aggregate: CommitApplier,
        sequence_id: str,
        since: int | None = None,
    ) -> list[Commit]:
        """Replay a stream's commits onto an aggregate.

        Args:
            aggregate: Receives ``apply_commit`` once per replayed commit.
            sequence_id: The stream to replay.
            since: First slot to replay (inclusive), defaults to 1.

        Returns:
            The commits applied, in slot order. Empty for an unknown stream.

        Raises:
            SlotValidationError: If ``since`` is lower than 1. Raised
                before any commit is read.
            RetrievalError: If the stream cannot be read.
            Exception: Whatever ``apply_commit`` raises, verbatim. Replay
                stops at the failing commit and earlier commits stay applied.
        """
        ...

    @abstractmethod
    async def load_commits(self, sequence_id: str, since: int | None = None) -> list[Commit]:
        """Load the commits of a stream from ``since`` (inclusive) onwards."""
        ...

    @abstractmethod
    async def current_slot(self, sequence_id: str) -> int:
        """Get the length of a stream, 0 if it does not exist."""
        ...

    @abstractmethod
    def get_dispatch_queue(self) -> DispatchQueue:
        """Register a new queue that receives every commit appended from now on."""
        ...


class InMemoryEventStreamStore(EventStreamStore):
    """Dictionary-based in-memory event stream store.

    Keeps every stream in a list keyed by sequence id and can simulate
    storage failures for testing retry behaviour.

    The slot check is strict by default: a commit must occupy exactly the
    next slot (``length + 1``), and a gap is refused with a non-retriable
    SinkError. With ``strict_slots=False`` any slot greater than the
    current length is accepted, and the first commit of a stream is
    accepted whatever its slot.

    Check and append happen without a suspension point in between, so
    concurrent tasks on one event loop cannot interleave them.

    Attributes:
        want_append_success: When False, every append fails with SinkError.
        want_rehydrate_success: When False, every rehydrate and
            load_commits call fails with RetrievalError.
        failure_tag: Diagnostic tag attached to simulated failures.
        failure_retriable: Retriable flag of simulated failures.

    **NOT suitable for production**: nothing survives a restart.
    """

    def __init__(
        self,
        strict_slots: bool = True,
        dispatcher: CommitDispatcher | None = None,
    ) -> None:
        self.strict_slots = strict_slots
        self.streams: dict[str, list[Commit]] = {}
        self.dispatcher = CommitDispatcher() if dispatcher is None else dispatcher

        self.want_append_success = True
        self.want_rehydrate_success = True
        self.failure_tag = "in-memory store simulated failure"
        self.failure_retriable = False

    async def append(self, commit: Commit) -> None:
        if not self.want_append_success:
            raise SinkError(
                f"Append to {commit.sequence_id!r} rejected",
                retriable=self.failure_retriable,
                detail={"simulated": self.failure_tag, "slot": commit.slot},
            )

        stream = self.streams.get(commit.sequence_id)
        current = len(stream) if stream is not None else 0

        if stream is not None and commit.slot <= current:
            LOGGER.info(
                "Optimistic concurrency conflict",
                extra={
                    "sequence_id": commit.sequence_id,
                    "offered_slot": commit.slot,
                    "current_slot": current,
                },
            )
            raise ConcurrencyError(commit.sequence_id, offered=commit.slot, current=current)

        if self.strict_slots and commit.slot != current + 1:
            raise SinkError(
                f"Slot {commit.slot} would leave a gap in {commit.sequence_id!r} "
                f"(expected slot {current + 1})",
                retriable=False,
                detail={"offered": commit.slot, "current": current},
            )

        if stream is None:
            self.streams[commit.sequence_id] = [commit]
        else:
            stream.append(commit)

        LOGGER.debug(
            "Appended commit",
            extra={
                "sequence_id": commit.sequence_id,
                "slot": commit.slot,
                "events": len(commit.events),
            },
        )
        self.dispatcher.dispatch(commit)

    async def rehydrate(
        self,
        aggregate: CommitApplier,
        sequence_id: str,
        since: int | None = None,
    ) -> list[Commit]:
        commits = await self.load_commits(sequence_id, since)

        applied: list[Commit] = []
        for commit in commits:
            aggregate.apply_commit(commit)
            applied.append(commit)

        LOGGER.debug(
            "Rehydrated aggregate",
            extra={"sequence_id": sequence_id, "commits": len(applied)},
        )
        return applied

    async def load_commits(self, sequence_id: str, since: int | None = None) -> list[Commit]:
        start = validate_since(since)
        if not self.want_rehydrate_success:
            raise RetrievalError(
                f"Could not retrieve commits of {sequence_id!r}",
                retriable=self.failure_retriable,
                detail={"simulated": self.failure_tag},
            )
        # Positions, not slot values: in permissive mode the two may differ.
        return list(self.streams.get(sequence_id, [])[start - 1 :])

    async def current_slot(self, sequence_id: str) -> int:
        return len(self.streams.get(sequence_id, []))

    def get_dispatch_queue(self) -> DispatchQueue:
        return self.dispatcher.register()
